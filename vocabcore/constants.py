"""
Scheduling and presentation constants.

Pure constants only. Runtime configuration is injected through
SchedulerConfig and the CLI options.
"""
from datetime import timedelta

# Highest mastery level a card can reach.
MAX_HEALTH: int = 4

# Health assigned to a card the user has never reviewed.
DEFAULT_HEALTH: int = 1

# Rest period after each review before a card is presented again.
COOLDOWN_DURATION: timedelta = timedelta(minutes=5)
COOLDOWN_MS: int = int(COOLDOWN_DURATION.total_seconds() * 1000)

# Cadence of the re-admission tick driven by the session host.
TICK_INTERVAL_SECONDS: float = 1.0

# Length of the exit animation after an answer; new answers are ignored
# while it is pending.
SWIPE_TRANSITION_SECONDS: float = 0.2

# Horizontal drag distance that turns a drag into an answer.
SWIPE_DISTANCE_THRESHOLD_PX: int = 100

DICTIONARY_API_URL: str = "https://api.dictionaryapi.dev/api/v2/entries/en"
