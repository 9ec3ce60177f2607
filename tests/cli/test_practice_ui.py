"""
Unit tests for the vocabcore.cli.practice_ui module.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from vocabcore.cli.practice_ui import enable_grind, health_bar, start_practice_flow
from vocabcore.constants import COOLDOWN_MS
from vocabcore.db import VocabularyDatabase
from vocabcore.exceptions import ProgressOperationError
from vocabcore.models import VocabularyCard
from vocabcore.progress import datetime_to_ms
from vocabcore.session import PracticeSession

START = datetime_to_ms(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


class FakeClock:
    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeTimer:
    def __init__(self, interval, callback):
        self.callback = callback

    def start(self):
        pass

    def cancel(self):
        pass


@pytest.fixture
def deck_id():
    return uuid4()


@pytest.fixture
def card(deck_id) -> VocabularyCard:
    return VocabularyCard(
        deck_id=deck_id,
        front="commute",
        back="to travel regularly to work",
        example_sentence="I commute by train.",
    )


@pytest.fixture
def mock_store(card) -> MagicMock:
    store = MagicMock(spec=VocabularyDatabase)
    store.load_cards.return_value = ([card], [])
    return store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session(mock_store, deck_id, clock):
    practice = PracticeSession(
        store=mock_store,
        deck_id=deck_id,
        user_id="ana",
        clock=clock,
        transition_seconds=0,
        timer_factory=FakeTimer,
    )
    practice.open()
    yield practice
    practice.close()


def test_health_bar():
    assert health_bar(2, 4) == "[green]██[/green][dim]░░[/dim]"
    assert health_bar(0, 2) == "[green][/green][dim]░░[/dim]"


def test_empty_deck(mock_store, session, capsys):
    mock_store.load_cards.return_value = ([], [])
    session.refresh()

    with patch("rich.console.Console.input") as mock_input:
        tally = start_practice_flow(session, deck_title="Verbs")

    captured = capsys.readouterr()
    assert "Practising Verbs" in captured.out
    assert "No cards to practise." in captured.out
    assert "Practice finished." in captured.out
    mock_input.assert_not_called()
    assert sum(tally.values()) == 0


def test_flip_answer_then_cooling(mock_store, session, capsys):
    with patch("rich.console.Console.input", side_effect=["", "y", "q"]):
        tally = start_practice_flow(session, deck_title="Verbs")

    captured = capsys.readouterr()
    assert "Card 1 of 1" in captured.out
    assert "commute" in captured.out
    assert "to travel regularly to work" in captured.out
    assert "I commute by train." in captured.out
    assert "All cards are on a 5-minute break." in captured.out
    assert "Next card in 5m 0s" in captured.out
    assert "Known: 1, not yet: 0" in captured.out
    assert tally["known"] == 1

    mock_store.persist_review.assert_called_once()
    assert mock_store.persist_review.call_args.kwargs["new_health"] == 2
    assert not session.state.is_practicing


def test_enter_while_cooling_checks_again(session, clock, capsys):
    answers = iter(["n", "", "q"])

    def fake_input(*args, **kwargs):
        choice = next(answers)
        if choice == "":
            clock.now += COOLDOWN_MS
        return choice

    with patch("rich.console.Console.input", side_effect=fake_input):
        tally = start_practice_flow(session)

    captured = capsys.readouterr()
    assert captured.out.count("Card 1 of 1") == 2
    assert captured.out.count("5-minute break") == 1
    assert tally["unknown"] == 1


def test_grind_mode_reloads_the_deck(mock_store, session, capsys):
    with patch("rich.console.Console.input", side_effect=["g", "y", "q"]):
        start_practice_flow(session)

    captured = capsys.readouterr()
    assert "Grind mode on" in captured.out
    assert "5-minute break" not in captured.out
    assert mock_store.load_cards.call_count == 2
    assert session.state.grind_mode is True


def test_grind_toggle_off(session, capsys):
    with patch("rich.console.Console.input", side_effect=["g", "g", "q"]):
        start_practice_flow(session)

    captured = capsys.readouterr()
    assert "Grind mode on" in captured.out
    assert "Grind mode off." in captured.out
    assert session.state.grind_mode is False


def test_enable_grind_when_everything_rests(mock_store, session):
    session.start()
    session.request_answer(True)
    assert session.state.practice_queue == ()

    enable_grind(session)

    assert session.state.grind_mode is True
    assert mock_store.load_cards.call_count == 2
    assert len(session.state.practice_queue) == 1


def test_unknown_key(session, capsys):
    with patch("rich.console.Console.input", side_effect=["x", "q"]):
        start_practice_flow(session)

    captured = capsys.readouterr()
    assert "Unknown key 'x'" in captured.out


def test_persist_error_is_reported(mock_store, session, capsys):
    mock_store.persist_review.side_effect = ProgressOperationError(
        "disk full"
    )

    with patch("rich.console.Console.input", side_effect=["y", "q"]):
        tally = start_practice_flow(session)

    captured = capsys.readouterr()
    assert "Error saving progress" in captured.out
    assert tally["known"] == 0
