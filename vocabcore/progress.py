"""
Turns stored cards and per-user progress into scheduler cards.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from .constants import COOLDOWN_MS, DEFAULT_HEALTH
from .models import Card, CardProgress, VocabularyCard

logger = logging.getLogger(__name__)


def datetime_to_ms(ts: datetime) -> int:
    """Epoch milliseconds for a datetime. Naive values are taken as UTC."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp() * 1000)


def ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def derive_cooldown_until(
    last_reviewed_at: Optional[datetime],
    now_ms: int,
    cooldown_ms: int = COOLDOWN_MS,
) -> Optional[int]:
    """
    End of the rest period that started at the last review.

    Returns None when the card was never reviewed or its rest period is
    already over, so the card is immediately eligible.
    """
    if last_reviewed_at is None:
        return None
    until = datetime_to_ms(last_reviewed_at) + cooldown_ms
    return until if until > now_ms else None


def build_practice_cards(
    cards: Iterable[VocabularyCard],
    progress: Iterable[CardProgress],
    now_ms: int,
    cooldown_ms: int = COOLDOWN_MS,
    ignore_cooldown: bool = False,
) -> List[Card]:
    """
    Merge card content with the user's progress rows.

    Cards without a progress row start at DEFAULT_HEALTH with no cooldown.
    With ``ignore_cooldown`` every card is derived as immediately eligible.
    """
    progress_by_card: Dict[UUID, CardProgress] = {
        p.card_id: p for p in progress
    }
    result: List[Card] = []
    for card in cards:
        p = progress_by_card.get(card.id)
        health = p.health if p is not None else DEFAULT_HEALTH
        cooldown_until = None
        if p is not None and not ignore_cooldown:
            cooldown_until = derive_cooldown_until(
                p.last_reviewed_at, now_ms, cooldown_ms
            )
        result.append(
            Card(
                id=str(card.id),
                front=card.front,
                back=card.back,
                example_sentence=card.example_sentence,
                transcription=card.transcription,
                health=health,
                cooldown_until=cooldown_until,
            )
        )
    logger.debug(
        f"Built {len(result)} practice cards "
        f"({len(progress_by_card)} with saved progress)."
    )
    return result
