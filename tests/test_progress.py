from datetime import datetime, timedelta, timezone
from uuid import uuid4

from vocabcore.constants import COOLDOWN_MS, DEFAULT_HEALTH
from vocabcore.models import CardProgress, VocabularyCard
from vocabcore.progress import (
    build_practice_cards,
    datetime_to_ms,
    derive_cooldown_until,
    ms_to_datetime,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
NOW_MS = datetime_to_ms(NOW)


def test_datetime_ms_conversions():
    assert datetime_to_ms(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0
    assert datetime_to_ms(NOW.replace(tzinfo=None)) == NOW_MS
    assert ms_to_datetime(NOW_MS) == NOW


def test_derive_cooldown_never_reviewed():
    assert derive_cooldown_until(None, NOW_MS) is None


def test_derive_cooldown_recent_review_is_still_resting():
    reviewed = NOW - timedelta(minutes=2)
    until = derive_cooldown_until(reviewed, NOW_MS)
    assert until == datetime_to_ms(reviewed) + COOLDOWN_MS
    assert until > NOW_MS


def test_derive_cooldown_expired_review_is_eligible():
    reviewed = NOW - timedelta(minutes=5)
    assert derive_cooldown_until(reviewed, NOW_MS) is None
    assert derive_cooldown_until(NOW - timedelta(days=1), NOW_MS) is None


def test_build_practice_cards_merges_progress():
    deck_id = uuid4()
    fresh = VocabularyCard(deck_id=deck_id, front="fresh", back="new")
    practised = VocabularyCard(
        deck_id=deck_id,
        front="practised",
        back="seen before",
        example_sentence="An example.",
    )
    progress = [
        CardProgress(
            user_id="ana",
            card_id=practised.id,
            deck_id=deck_id,
            health=3,
            last_reviewed_at=NOW - timedelta(minutes=1),
        )
    ]

    cards = build_practice_cards([fresh, practised], progress, now_ms=NOW_MS)
    by_front = {c.front: c for c in cards}

    assert by_front["fresh"].id == str(fresh.id)
    assert by_front["fresh"].health == DEFAULT_HEALTH
    assert by_front["fresh"].cooldown_until is None

    assert by_front["practised"].health == 3
    assert by_front["practised"].example_sentence == "An example."
    assert by_front["practised"].cooldown_until == (
        datetime_to_ms(NOW - timedelta(minutes=1)) + COOLDOWN_MS
    )


def test_build_practice_cards_can_ignore_cooldown():
    deck_id = uuid4()
    card = VocabularyCard(deck_id=deck_id, front="w", back="d")
    progress = [
        CardProgress(
            user_id="ana",
            card_id=card.id,
            deck_id=deck_id,
            health=0,
            last_reviewed_at=NOW,
        )
    ]
    [result] = build_practice_cards(
        [card], progress, now_ms=NOW_MS, ignore_cooldown=True
    )
    assert result.cooldown_until is None
    assert result.health == 0
