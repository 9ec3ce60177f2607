import logging
import pytest
from pathlib import Path
from typing import Generator
from datetime import datetime, timezone
from uuid import UUID

from vocabcore.models import Deck, VocabularyCard
from vocabcore.db import VocabularyDatabase


DECK_ID = UUID("aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa")
OTHER_DECK_ID = UUID("bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb")


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch):
    """Run every test with its own temporary directory as the cwd."""
    monkeypatch.chdir(tmp_path)
    yield


# --- Database Fixtures ---
@pytest.fixture
def db_path_memory() -> str:
    return ":memory:"


@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    return tmp_path / "test_vocab.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_memory: str, db_path_file: Path
) -> Generator[VocabularyDatabase, None, None]:
    """
    Provide a VocabularyDatabase, either in-memory or file-backed, and close
    it (removing the file) on teardown.
    """
    if request.param == "memory":
        db_man = VocabularyDatabase(db_path_memory)
    else:
        db_man = VocabularyDatabase(db_path_file)
    try:
        yield db_man
    finally:
        db_man.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"  # noqa: E501
                )


@pytest.fixture
def initialized_db_manager(
    db_manager: VocabularyDatabase,
) -> VocabularyDatabase:
    db_manager.initialize_schema()
    return db_manager


@pytest.fixture
def sample_deck() -> Deck:
    return Deck(
        id=DECK_ID,
        title="Everyday verbs",
        description="Verbs for daily routines",
        created_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def other_deck() -> Deck:
    return Deck(
        id=OTHER_DECK_ID,
        title="Adjectives",
        created_at=datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_card1(sample_deck: Deck) -> VocabularyCard:
    return VocabularyCard(
        id=UUID("11111111-1111-4111-8111-111111111111"),
        deck_id=sample_deck.id,
        front="commute",
        back="to travel regularly between home and work",
        example_sentence="I commute by train.",
        transcription="/kəˈmjuːt/",
        added_at=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_card2(sample_deck: Deck) -> VocabularyCard:
    return VocabularyCard(
        id=UUID("22222222-2222-4222-8222-222222222222"),
        deck_id=sample_deck.id,
        front="oversleep",
        back="to sleep longer than intended",
        added_at=datetime(2024, 1, 1, 10, 5, tzinfo=timezone.utc),
    )


@pytest.fixture
def populated_db(
    initialized_db_manager: VocabularyDatabase,
    sample_deck: Deck,
    sample_card1: VocabularyCard,
    sample_card2: VocabularyCard,
) -> VocabularyDatabase:
    """A database holding sample_deck with its two cards."""
    initialized_db_manager.create_deck(sample_deck)
    initialized_db_manager.add_cards_batch([sample_card1, sample_card2])
    return initialized_db_manager
