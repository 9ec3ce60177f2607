"""
Terminal practice loop: the presentation adapter over a PracticeSession.
"""

import logging
from collections import Counter
from typing import Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from vocabcore.constants import COOLDOWN_DURATION, MAX_HEALTH
from vocabcore.exceptions import DatabaseError
from vocabcore.models import Card
from vocabcore.scheduler import PracticeStatus
from vocabcore.session import (
    PracticeSession,
    card_position,
    format_cooldown,
    next_cooldown_ms,
)

logger = logging.getLogger(__name__)
console = Console()

PROMPT = (
    "[bold]Enter[/bold]/f flip · [bold]y[/bold] I know · "
    "[bold]n[/bold] don't know · [bold]g[/bold] grind mode · "
    "[bold]q[/bold] quit"
)
COOLDOWN_MINUTES = int(COOLDOWN_DURATION.total_seconds() // 60)


def health_bar(value: int, max_value: int = MAX_HEALTH) -> str:
    """Rich markup for a filled/empty segment bar, e.g. ``██░░``."""
    filled = "█" * value
    empty = "░" * (max_value - value)
    return f"[green]{filled}[/green][dim]{empty}[/dim]"


def _render_card(card: Card, show_back: bool, position: int, total: int):
    if show_back:
        body = Text(card.back)
        if card.example_sentence:
            body.append(f"\n\n{card.example_sentence}", style="italic")
        title, style = "Definition", "blue"
    else:
        body = Text(card.front, style="bold")
        if card.transcription:
            body.append(f"  {card.transcription}", style="dim")
        title, style = "Word", "green"

    console.print(
        Panel(
            Group(body, Text.from_markup("\n" + health_bar(card.health))),
            title=title,
            subtitle=f"Card {max(position, 1)} of {max(total, 1)}",
            border_style=style,
        )
    )


def _render_cooling(session: PracticeSession) -> None:
    remaining = next_cooldown_ms(session.state, session.now())
    console.print(
        f"[yellow]All cards are on a {COOLDOWN_MINUTES}-minute break.[/yellow]"
    )
    message = (
        f"Next card in [bold green]{format_cooldown(remaining)}"
        "[/bold green]."
    )
    if not session.state.grind_mode:
        message += " Enable grind mode (g) to keep practising without breaks."
    console.print(message)


def _handle_answer(session: PracticeSession, known: bool, tally: Counter):
    try:
        accepted = session.request_answer(known)
    except DatabaseError as e:
        logger.error(f"Failed to save answer: {e}")
        console.print(
            "[bold red]Error saving progress. "
            "This answer was not saved.[/bold red]"
        )
        return
    if accepted:
        tally["known" if known else "unknown"] += 1


def enable_grind(session: PracticeSession) -> None:
    """Turn grind mode on; with nothing queued, start a fresh round."""
    session.set_grind_mode(True)
    if not session.state.practice_queue:
        session.refresh(ignore_cooldown=True)


def _toggle_grind(session: PracticeSession) -> None:
    if session.state.grind_mode:
        session.set_grind_mode(False)
        console.print("[cyan]Grind mode off.[/cyan]")
    else:
        enable_grind(session)
        console.print(
            "[cyan]Grind mode on: answered cards skip the break.[/cyan]"
        )


def start_practice_flow(
    session: PracticeSession, deck_title: Optional[str] = None
) -> Counter:
    """
    Run the interactive practice loop until the user quits or the deck has
    nothing left to show.

    Returns:
        Counter: Number of ``known`` and ``unknown`` answers given.
    """
    tally: Counter = Counter()
    session.start()
    console.print(
        f"[bold cyan]Practising {deck_title or 'deck'}...[/bold cyan]"
    )

    while True:
        status = session.status
        if status is PracticeStatus.EMPTY_EXHAUSTED:
            console.print("[bold yellow]No cards to practise.[/bold yellow]")
            break
        if status is PracticeStatus.IDLE:
            break

        if status is PracticeStatus.EMPTY_COOLING:
            _render_cooling(session)
            choice = console.input(
                "[italic]Enter to check again, g for grind mode, q to quit: "
                "[/italic]"
            )
        else:
            state = session.state
            position, total = card_position(state)
            _render_card(state.current_card, state.show_back, position, total)
            choice = console.input(PROMPT + "\n> ")

        choice = choice.strip().lower()
        if choice == "q":
            break
        if choice == "g":
            _toggle_grind(session)
        elif status is PracticeStatus.EMPTY_COOLING:
            session.tick()
        elif choice in ("", "f"):
            session.flip()
        elif choice == "y":
            _handle_answer(session, True, tally)
        elif choice == "n":
            _handle_answer(session, False, tally)
        else:
            console.print(f"[red]Unknown key '{choice}'.[/red]")

    session.stop()
    console.print(
        f"[bold cyan]Practice finished.[/bold cyan] "
        f"Known: [green]{tally['known']}[/green], "
        f"not yet: [red]{tally['unknown']}[/red]."
    )
    return tally
