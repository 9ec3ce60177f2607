"""Vocabcore - vocabulary decks with a health-based practice scheduler."""

from .models import Card, CardProgress, Deck, ReviewOutcome, VocabularyCard
from .constants import COOLDOWN_DURATION, DEFAULT_HEALTH, MAX_HEALTH
from .db import VocabularyDatabase
from .scheduler import (
    PracticeStatus,
    Scheduler,
    SchedulerConfig,
    SchedulerState,
    reduce,
)
from .session import PracticeSession

__all__ = [
    "Card",
    "CardProgress",
    "Deck",
    "ReviewOutcome",
    "VocabularyCard",
    "COOLDOWN_DURATION",
    "DEFAULT_HEALTH",
    "MAX_HEALTH",
    "VocabularyDatabase",
    "PracticeStatus",
    "Scheduler",
    "SchedulerConfig",
    "SchedulerState",
    "reduce",
    "PracticeSession",
]
