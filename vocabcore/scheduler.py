# vocabcore/scheduler.py

"""
The review-queue state machine behind vocabulary practice.

Cards are split between a practice queue (eligible now, weakest first) and a
cooldown list (resting after a review). Every transition is a pure function
of the current SchedulerState and a command; the Scheduler class is a thin,
re-instantiable holder for one state value.
"""

import logging
import time
from enum import Enum
from typing import (
    Annotated,
    Callable,
    Iterable,
    List,
    Literal,
    Optional,
    Tuple,
    Union,
)

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .constants import COOLDOWN_MS, MAX_HEALTH
from .models import Card, ReviewOutcome

logger = logging.getLogger(__name__)

SwipeDirection = Literal["left", "right"]


def current_time_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class SchedulerConfig(BaseModel):
    """Configuration for the practice scheduler."""

    model_config = ConfigDict(frozen=True)

    max_health: int = Field(default=MAX_HEALTH, ge=1, le=MAX_HEALTH)
    cooldown_ms: int = Field(default=COOLDOWN_MS, ge=0)


DEFAULT_CONFIG = SchedulerConfig()


class PracticeStatus(str, Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    EMPTY_COOLING = "empty_cooling"
    EMPTY_EXHAUSTED = "empty_exhausted"


class SchedulerState(BaseModel):
    """
    Live state of one practice session.

    ``current_card`` is a view onto a member of ``practice_queue``: the card
    stays queued while it is on screen and leaves the queue only when it is
    answered.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    practice_queue: Tuple[Card, ...] = ()
    cooldown_list: Tuple[Card, ...] = ()
    current_card: Optional[Card] = None
    show_back: bool = False
    swipe_direction: Optional[SwipeDirection] = None
    is_practicing: bool = False
    grind_mode: bool = False
    last_outcome: Optional[ReviewOutcome] = None

    @property
    def status(self) -> PracticeStatus:
        if not self.is_practicing:
            return PracticeStatus.IDLE
        if self.current_card is not None:
            return PracticeStatus.PRESENTING
        if self.cooldown_list:
            return PracticeStatus.EMPTY_COOLING
        return PracticeStatus.EMPTY_EXHAUSTED

    def all_cards(self) -> List[Card]:
        """Every card still tracked by the session, queue first."""
        return [*self.practice_queue, *self.cooldown_list]


# --- Commands ---


class LoadCards(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["load_cards"] = "load_cards"
    cards: Tuple[Card, ...]
    now: int


class StartPractice(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["start_practice"] = "start_practice"


class StopPractice(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["stop_practice"] = "stop_practice"


class FlipCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["flip_card"] = "flip_card"


class Answer(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["answer"] = "answer"
    known: bool
    now: int


class Tick(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["tick"] = "tick"
    now: int


class SetGrindMode(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["set_grind_mode"] = "set_grind_mode"
    value: bool


class Swipe(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["swipe"] = "swipe"
    direction: Optional[SwipeDirection] = None


Command = Annotated[
    Union[
        LoadCards,
        StartPractice,
        StopPractice,
        FlipCard,
        Answer,
        Tick,
        SetGrindMode,
        Swipe,
    ],
    Field(discriminator="type"),
]

_COMMAND_ADAPTER = TypeAdapter(Command)


def parse_command(data: dict) -> Command:
    """Build a command from its serialized form, e.g. {"type": "tick"}."""
    return _COMMAND_ADAPTER.validate_python(data)


# --- Transition rules ---


def sort_by_health(cards: Iterable[Card]) -> Tuple[Card, ...]:
    """Weakest first; equal health falls back to the id for determinism."""
    return tuple(sorted(cards, key=lambda c: (c.health, c.id)))


def next_health(
    health: int, known: bool, max_health: int = MAX_HEALTH
) -> int:
    """Move health one step up or down, clamped to [0, max_health]."""
    if known:
        return min(health + 1, max_health)
    return max(health - 1, 0)


def _load(state: SchedulerState, cmd: LoadCards) -> SchedulerState:
    queue = sort_by_health(c for c in cmd.cards if c.is_eligible(cmd.now))
    cooldown = tuple(c for c in cmd.cards if not c.is_eligible(cmd.now))
    logger.debug(
        f"Loaded {len(cmd.cards)} cards: {len(queue)} queued, "
        f"{len(cooldown)} cooling down."
    )
    return state.model_copy(
        update={
            "practice_queue": queue,
            "cooldown_list": cooldown,
            "current_card": queue[0] if queue else None,
        }
    )


def _start(state: SchedulerState) -> SchedulerState:
    queue = state.practice_queue
    return state.model_copy(
        update={
            "is_practicing": True,
            "show_back": False,
            "swipe_direction": None,
            "current_card": queue[0] if queue else None,
        }
    )


def _stop(state: SchedulerState) -> SchedulerState:
    return state.model_copy(
        update={
            "is_practicing": False,
            "show_back": False,
            "swipe_direction": None,
            "current_card": None,
        }
    )


def _flip(state: SchedulerState) -> SchedulerState:
    if state.current_card is None or not state.is_practicing:
        logger.debug("Ignoring flip: no card is being presented.")
        return state
    return state.model_copy(update={"show_back": not state.show_back})


def _answer(
    state: SchedulerState, cmd: Answer, config: SchedulerConfig
) -> SchedulerState:
    card = state.current_card
    if card is None:
        logger.debug("Ignoring answer: no current card.")
        return state

    new_health = next_health(card.health, cmd.known, config.max_health)
    outcome = ReviewOutcome(
        card_id=card.id,
        known=cmd.known,
        previous_health=card.health,
        new_health=new_health,
        reviewed_at=cmd.now,
    )

    if state.grind_mode:
        # Dropped from both lists until the host reloads the deck.
        cooldown = state.cooldown_list
    else:
        rested = card.model_copy(
            update={
                "health": new_health,
                "cooldown_until": cmd.now + config.cooldown_ms,
            }
        )
        cooldown = (*state.cooldown_list, rested)

    queue = tuple(c for c in state.practice_queue if c.id != card.id)
    logger.debug(
        f"Answered card {card.id} known={cmd.known}: "
        f"health {card.health} -> {new_health}."
    )
    return state.model_copy(
        update={
            "practice_queue": queue,
            "cooldown_list": cooldown,
            "current_card": queue[0] if queue else None,
            "show_back": False,
            "last_outcome": outcome,
        }
    )


def _tick(state: SchedulerState, cmd: Tick) -> SchedulerState:
    ready = [c for c in state.cooldown_list if c.is_eligible(cmd.now)]
    if not ready:
        return state

    still_cooling = tuple(
        c for c in state.cooldown_list if not c.is_eligible(cmd.now)
    )
    queue = sort_by_health((*state.practice_queue, *ready))

    current = state.current_card
    if current is None or all(c.id != current.id for c in queue):
        current = queue[0] if queue else None

    logger.debug(f"{len(ready)} cards finished their cooldown.")
    return state.model_copy(
        update={
            "practice_queue": queue,
            "cooldown_list": still_cooling,
            "current_card": current if state.is_practicing else None,
        }
    )


def reduce(
    state: SchedulerState,
    command: Command,
    config: SchedulerConfig = DEFAULT_CONFIG,
) -> SchedulerState:
    """
    Apply one command to a state and return the resulting state.

    The input state is never modified. Commands that do not change anything
    return the very same object, so callers can compare with ``is`` to skip
    needless updates.

    Raises:
        TypeError: If ``command`` is not one of the scheduler commands.
    """
    if isinstance(command, LoadCards):
        return _load(state, command)
    if isinstance(command, StartPractice):
        return _start(state)
    if isinstance(command, StopPractice):
        return _stop(state)
    if isinstance(command, FlipCard):
        return _flip(state)
    if isinstance(command, Answer):
        return _answer(state, command, config)
    if isinstance(command, Tick):
        return _tick(state, command)
    if isinstance(command, SetGrindMode):
        if state.grind_mode == command.value:
            return state
        return state.model_copy(update={"grind_mode": command.value})
    if isinstance(command, Swipe):
        if state.swipe_direction == command.direction:
            return state
        return state.model_copy(update={"swipe_direction": command.direction})
    raise TypeError(f"Unknown scheduler command: {command!r}")


class Scheduler:
    """
    Holds one SchedulerState and applies commands to it.

    Not thread-safe: the owner must serialize calls (see PracticeSession).
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        clock: Callable[[], int] = current_time_ms,
    ):
        self.config = config or DEFAULT_CONFIG
        self._clock = clock
        self._state = SchedulerState()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def status(self) -> PracticeStatus:
        return self._state.status

    def dispatch(self, command: Command) -> SchedulerState:
        self._state = reduce(self._state, command, self.config)
        return self._state

    def load(
        self, cards: Iterable[Card], now: Optional[int] = None
    ) -> SchedulerState:
        now = self._clock() if now is None else now
        return self.dispatch(LoadCards(cards=tuple(cards), now=now))

    def start_practice(self) -> SchedulerState:
        return self.dispatch(StartPractice())

    def stop_practice(self) -> SchedulerState:
        return self.dispatch(StopPractice())

    def flip(self) -> SchedulerState:
        return self.dispatch(FlipCard())

    def answer(
        self, known: bool, now: Optional[int] = None
    ) -> Optional[ReviewOutcome]:
        """
        Answer the current card.

        Returns the ReviewOutcome for the caller to persist, or None when there
        was no card to answer.
        """
        before = self._state
        now = self._clock() if now is None else now
        after = self.dispatch(Answer(known=known, now=now))
        if after is before:
            return None
        return after.last_outcome

    def tick(self, now: Optional[int] = None) -> SchedulerState:
        now = self._clock() if now is None else now
        return self.dispatch(Tick(now=now))

    def set_grind_mode(self, value: bool) -> SchedulerState:
        return self.dispatch(SetGrindMode(value=value))

    def set_swipe(self, direction: Optional[SwipeDirection]) -> SchedulerState:
        return self.dispatch(Swipe(direction=direction))
