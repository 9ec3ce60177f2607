"""
CLI entry point for vocabcore.
"""

# Standard library imports
import os
from pathlib import Path
from typing import List, Optional
from uuid import UUID

# Third-party imports
import typer
from rich.console import Console
from rich.table import Table

# Local application imports
from vocabcore.cli._practice_logic import practice_logic
from vocabcore.cli.practice_ui import health_bar
from vocabcore.db.database import VocabularyDatabase
from vocabcore.db.db_utils import backup_database
from vocabcore.deck_importer import load_deck_file
from vocabcore.dictionary import DictionaryClient, DictionaryEntry
from vocabcore.exceptions import (
    DatabaseError,
    DeckImportError,
    DeckNotFoundError,
    DictionaryLookupError,
)
from vocabcore.models import Card, Deck, VocabularyCard
from vocabcore.progress import build_practice_cards
from vocabcore.scheduler import current_time_ms
from vocabcore.session import format_cooldown


console = Console()

app = typer.Typer(
    name="vocabcore",
    help="Vocabcore: vocabulary decks with health-based practice.",
    add_completion=False,
    rich_markup_mode="markdown",
)

DEFAULT_USER = "local"


# ---------------------------------------------------------------------------
# Helpers for resolving the --db path (no defaults, VOCABCORE_DB envvar)
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path]) -> Path:
    """Resolve db path from CLI flag or VOCABCORE_DB envvar. Exits on missing."""
    if db is not None:
        return db
    env_val = os.environ.get("VOCABCORE_DB")
    if env_val:
        return Path(env_val)
    console.print(
        "[bold red]Error: --db is required "
        "(or set the VOCABCORE_DB environment variable).[/bold red]"
    )
    raise typer.Exit(code=1)


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to VOCABCORE_DB env var.",
    envvar="VOCABCORE_DB",
)

_user_option = typer.Option(  # noqa: B008
    DEFAULT_USER,
    "--user",
    "-u",
    help="Whose progress to read and write.",
    envvar="VOCABCORE_USER",
)


def _make_dictionary_client() -> DictionaryClient:
    return DictionaryClient()


# ---------------------------------------------------------------------------
# Deck commands
# ---------------------------------------------------------------------------


def _format_average(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}"


@app.command()
def decks(
    db: Optional[Path] = _db_option,
    user: str = _user_option,
):
    """List decks with the user's progress on each."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            stats = db_inst.get_deck_stats(user)
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    if not stats:
        console.print(
            "[yellow]No decks yet. Create one with `create-deck`.[/yellow]"
        )
        return

    table = Table(title=f"Decks ({user})")
    table.add_column("Title", style="cyan", no_wrap=True)
    table.add_column("ID", style="dim")
    table.add_column("Cards", style="magenta", justify="right")
    table.add_column("Reviewed", justify="right")
    table.add_column("Mastered", style="green", justify="right")
    table.add_column("Avg health", justify="right")
    for row in stats:
        table.add_row(
            row["title"],
            str(row["deck_id"]),
            str(row["card_count"]),
            str(row["reviewed_count"]),
            str(row["mastered_count"]),
            _format_average(row["average_health"]),
        )
    console.print(table)


@app.command("create-deck")
def create_deck(
    title: str = typer.Argument(..., help="Title of the new deck."),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Short description of the deck."
    ),
    public: bool = typer.Option(
        False, "--public", help="Share the deck. Public decks are read-only."
    ),
    db: Optional[Path] = _db_option,
):
    """Create an empty deck."""
    db_path = _resolve_db_path(db)
    try:
        deck = Deck(title=title, description=description, is_public=public)
    except ValueError as e:
        console.print(f"[bold red]Invalid deck:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            db_inst.create_deck(deck)
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    console.print(
        f"[bold green]Created deck '{deck.title}'[/bold green] "
        f"with id [cyan]{deck.id}[/cyan]"
    )


@app.command("delete-deck")
def delete_deck(
    deck_id: UUID = typer.Argument(..., help="ID of the deck to delete."),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
    db: Optional[Path] = _db_option,
):
    """Delete a deck, its cards and all progress on them."""
    db_path = _resolve_db_path(db)
    if not yes:
        typer.confirm(
            f"Delete deck {deck_id} and all of its cards?", abort=True
        )
    try:
        backup_path = backup_database(db_path)
        if backup_path is not None:
            console.print(f"Database backed up to: [dim]{backup_path}[/dim]")
        with VocabularyDatabase(db_path=db_path) as db_inst:
            removed = db_inst.delete_deck(deck_id)
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    console.print(
        f"[bold green]Deleted deck {deck_id}[/bold green] "
        f"and {removed} cards."
    )


# ---------------------------------------------------------------------------
# Card commands
# ---------------------------------------------------------------------------


def _lookup_entry(word: str) -> DictionaryEntry:
    """Look a word up, turning failures into a CLI exit."""
    try:
        with _make_dictionary_client() as client:
            return client.lookup(word)
    except DictionaryLookupError as e:
        console.print(f"[bold red]Dictionary error:[/bold red] {e}")
        raise typer.Exit(code=1) from e


@app.command("add-card")
def add_card(
    deck_id: UUID = typer.Argument(..., help="Deck to add the card to."),
    word: str = typer.Argument(..., help="The word or phrase to learn."),
    definition: Optional[str] = typer.Argument(
        None, help="Definition. Optional with --lookup."
    ),
    example: Optional[str] = typer.Option(
        None, "--example", "-e", help="Example sentence."
    ),
    transcription: Optional[str] = typer.Option(
        None, "--transcription", "-t", help="Phonetic transcription."
    ),
    lookup: bool = typer.Option(
        False,
        "--lookup",
        help="Fill in missing fields from the online dictionary.",
    ),
    db: Optional[Path] = _db_option,
):
    """
    Add a card to a private deck.

    With `--lookup`, the definition, example and transcription that were not
    given on the command line are taken from the dictionary.
    """
    db_path = _resolve_db_path(db)

    if lookup:
        entry = _lookup_entry(word)
        first = entry.first_definition
        if definition is None and first is not None:
            definition = first.definition
        if example is None and first is not None:
            example = first.example
        if transcription is None:
            transcription = entry.phonetic

    if not definition:
        console.print(
            "[bold red]Error: a word and its definition are required."
            "[/bold red]"
        )
        raise typer.Exit(code=1)

    try:
        card = VocabularyCard(
            deck_id=deck_id,
            front=word,
            back=definition,
            example_sentence=example,
            transcription=transcription,
        )
    except ValueError as e:
        console.print(f"[bold red]Invalid card:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            deck = db_inst.require_deck(deck_id)
            if deck.is_public:
                console.print(
                    "[bold red]Error: cards can only be added to private "
                    "decks.[/bold red]"
                )
                raise typer.Exit(code=1)
            db_inst.add_cards_batch([card])
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    console.print(
        f"[bold green]Added '{card.front}'[/bold green] "
        f"to '{deck.title}' ([dim]{card.id}[/dim])"
    )


@app.command("delete-card")
def delete_card(
    card_ids: List[UUID] = typer.Argument(  # noqa: B008
        ..., help="IDs of the cards to delete."
    ),
    db: Optional[Path] = _db_option,
):
    """Delete cards and all progress on them."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            deleted = db_inst.delete_cards_by_ids_batch(card_ids)
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    if deleted == 0:
        console.print("[yellow]No matching cards found.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"[bold green]Deleted {deleted} card(s).[/bold green]")


def _card_status(card: Card, now_ms: int) -> str:
    if card.is_eligible(now_ms):
        return "[green]ready[/green]"
    remaining = format_cooldown(card.cooldown_until - now_ms)
    return f"[yellow]resting {remaining}[/yellow]"


@app.command()
def cards(
    deck_id: UUID = typer.Argument(..., help="Deck to show."),
    db: Optional[Path] = _db_option,
    user: str = _user_option,
):
    """Show every card of a deck, weakest first."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            deck = db_inst.require_deck(deck_id)
            stored, progress = db_inst.load_cards(deck_id, user)
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    if not stored:
        console.print(f"[yellow]Deck '{deck.title}' has no cards.[/yellow]")
        return

    now = current_time_ms()
    practice_cards = sorted(
        build_practice_cards(stored, progress, now_ms=now),
        key=lambda c: (c.health, c.front.lower()),
    )

    table = Table(title=deck.title)
    table.add_column("Word", style="bold cyan", no_wrap=True)
    table.add_column("Definition")
    table.add_column("Health", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("ID", style="dim")
    for card in practice_cards:
        table.add_row(
            card.front,
            card.back,
            health_bar(card.health),
            _card_status(card, now),
            card.id,
        )
    console.print(table)


@app.command("import")
def import_deck(
    file: Path = typer.Argument(..., help="YAML deck file to import."),
    deck_id: Optional[UUID] = typer.Option(
        None,
        "--deck",
        help="Add the cards to this existing deck instead of a new one.",
    ),
    db: Optional[Path] = _db_option,
):
    """Import a deck of cards from a YAML file."""
    db_path = _resolve_db_path(db)
    try:
        result = load_deck_file(file, deck_id=deck_id)
    except DeckImportError as e:
        console.print(f"[bold red]Import failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if result.errors:
        console.print("[bold red]Errors encountered in the file:[/bold red]")
        for error in result.errors:
            console.print(f"- {error}")

    if not result.cards:
        console.print("[yellow]No valid cards to import.[/yellow]")
        raise typer.Exit(code=1)

    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            if deck_id is None:
                deck = db_inst.create_deck(result.deck)
            else:
                deck = db_inst.require_deck(deck_id)
            imported = db_inst.add_cards_batch(result.cards)
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    console.print("[bold green]Import complete![/bold green]")
    console.print(
        f"- [green]{imported}[/green] cards imported into "
        f"'{deck.title}' ([cyan]{deck.id}[/cyan])."
    )
    if result.errors:
        console.print(
            f"- [yellow]{len(result.errors)}[/yellow] cards were skipped."
        )


# ---------------------------------------------------------------------------
# Dictionary
# ---------------------------------------------------------------------------


@app.command()
def define(word: str = typer.Argument(..., help="Word to look up.")):
    """Look up a word in the online dictionary."""
    entry = _lookup_entry(word)

    heading = f"[bold cyan]{entry.word}[/bold cyan]"
    if entry.phonetic:
        heading += f"  [dim]{entry.phonetic}[/dim]"
    console.print(heading)
    for meaning in entry.meanings:
        console.print(f"[italic]{meaning.part_of_speech}[/italic]")
        for index, item in enumerate(meaning.definitions, start=1):
            console.print(f"  {index}. {item.definition}")
            if item.example:
                console.print(f"     [dim]\"{item.example}\"[/dim]")


# ---------------------------------------------------------------------------
# Practice
# ---------------------------------------------------------------------------


@app.command()
def practice(
    deck_id: UUID = typer.Argument(..., help="Deck to practise."),
    grind: bool = typer.Option(
        False,
        "--grind",
        help="Grind mode: answered cards come back without the 5-minute "
        "break.",
    ),
    db: Optional[Path] = _db_option,
    user: str = _user_option,
):
    """Practise a deck, weakest cards first."""
    db_path = _resolve_db_path(db)
    try:
        practice_logic(
            deck_id=deck_id, db_path=db_path, user_id=user, grind=grind
        )
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold red]A database error occurred: {e}[/bold red]")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
