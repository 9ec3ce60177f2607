"""
Domain records for vocabulary decks, cards and per-user progress.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_HEALTH, MAX_HEALTH


class Card(BaseModel):
    """
    A card as the scheduler sees it: display text plus mastery and cooldown.

    Instances are immutable; the scheduler produces updated copies with
    ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier, stable across sessions.",
    )
    front: str = Field(..., description="Word shown on the front face.")
    back: str = Field(..., description="Definition shown on the back face.")
    example_sentence: Optional[str] = Field(
        default=None, description="Optional usage example."
    )
    transcription: Optional[str] = Field(
        default=None, description="Optional phonetic transcription."
    )
    health: int = Field(
        default=DEFAULT_HEALTH,
        ge=0,
        le=MAX_HEALTH,
        description="Mastery level, 0 (weakest) to MAX_HEALTH (strongest).",
    )
    cooldown_until: Optional[int] = Field(
        default=None,
        description="Epoch ms before which the card must not be shown. "
        "None means immediately eligible.",
    )

    def is_eligible(self, now_ms: int) -> bool:
        """True when the card may be presented at ``now_ms``."""
        return self.cooldown_until is None or self.cooldown_until <= now_ms


class ReviewOutcome(BaseModel):
    """
    The result of answering a card, handed to the storage collaborator
    so it can write the new health through.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    card_id: str
    known: bool
    previous_health: int = Field(..., ge=0, le=MAX_HEALTH)
    new_health: int = Field(..., ge=0, le=MAX_HEALTH)
    reviewed_at: int = Field(
        ..., ge=0, description="Epoch ms at which the answer was given."
    )

    @property
    def reviewed_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reviewed_at / 1000, tz=timezone.utc)


class Deck(BaseModel):
    """A named collection of vocabulary cards."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: UUID = Field(
        default_factory=uuid.uuid4,
        description="Unique UUIDv4 for the deck. Auto-generated.",
    )
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    is_public: bool = Field(
        default=False,
        description="Public decks are shared; private decks accept edits.",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the deck was created.",
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, title: str) -> str:
        stripped = title.strip()
        if not stripped:
            raise ValueError("Deck title must not be blank.")
        return stripped


class VocabularyCard(BaseModel):
    """
    Stored card content. Mastery lives separately in CardProgress because it
    is per user.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: UUID = Field(
        default_factory=uuid.uuid4,
        description="Unique UUIDv4 for the card. Auto-generated.",
    )
    deck_id: UUID = Field(..., description="Deck this card belongs to.")
    front: str = Field(
        ..., min_length=1, max_length=512, description="The word or phrase."
    )
    back: str = Field(
        ..., min_length=1, max_length=2048, description="The definition."
    )
    example_sentence: Optional[str] = Field(default=None, max_length=2048)
    transcription: Optional[str] = Field(default=None, max_length=256)
    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the card was added.",
    )

    @field_validator("front", "back")
    @classmethod
    def strip_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Card text must not be blank.")
        return stripped

    @field_validator("example_sentence", "transcription")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class CardProgress(BaseModel):
    """A user's mastery of one card and when it was last reviewed."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    user_id: str = Field(..., min_length=1)
    card_id: UUID
    deck_id: UUID
    health: int = Field(default=DEFAULT_HEALTH, ge=0, le=MAX_HEALTH)
    last_reviewed_at: Optional[datetime] = Field(
        default=None, description="UTC timestamp of the latest review."
    )
