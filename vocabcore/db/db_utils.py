"""
Marshalling between the pydantic models and DuckDB rows, plus file backups.
Keeps data conversion out of the query code in database.py.
"""

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import CardProgress, Deck, VocabularyCard

logger = logging.getLogger(__name__)


def _as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """DuckDB may hand back naive or local-zone timestamps; normalize to UTC."""
    if ts is None:
        return None
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def deck_to_db_params(deck: Deck) -> Tuple:
    """(id, title, description, is_public, created_at)"""
    return (
        deck.id,
        deck.title,
        deck.description,
        deck.is_public,
        deck.created_at,
    )


def db_row_to_deck(row_dict: Dict[str, Any]) -> Deck:
    data = row_dict.copy()
    data["created_at"] = _as_utc(data.get("created_at"))
    try:
        return Deck(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse deck from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def cards_to_db_params_list(cards: Sequence[VocabularyCard]) -> List[Tuple]:
    """
    Convert cards into tuples for bulk insertion, in column order:
    (id, deck_id, front, back, example_sentence, transcription, added_at).
    """
    return [
        (
            card.id,
            card.deck_id,
            card.front,
            card.back,
            card.example_sentence,
            card.transcription,
            card.added_at,
        )
        for card in cards
    ]


def db_row_to_card(row_dict: Dict[str, Any]) -> VocabularyCard:
    """
    Raises:
        MarshallingError: If the row does not validate as a VocabularyCard.
    """
    data = row_dict.copy()
    data["added_at"] = _as_utc(data.get("added_at"))
    try:
        return VocabularyCard(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse card from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def progress_to_db_params(progress: CardProgress) -> Tuple:
    """(user_id, card_id, deck_id, health, last_reviewed_at)"""
    return (
        progress.user_id,
        progress.card_id,
        progress.deck_id,
        progress.health,
        progress.last_reviewed_at,
    )


def db_row_to_progress(row_dict: Dict[str, Any]) -> CardProgress:
    data = row_dict.copy()
    data["last_reviewed_at"] = _as_utc(data.get("last_reviewed_at"))
    try:
        return CardProgress(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse progress from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def backup_database(db_path: Path) -> Optional[Path]:
    """
    Copy the database file into a "backups" directory beside it.

    Returns:
        Path | None: The backup file, e.g.
            ``backups/vocab-backup-20240101-120000.db``, or None when there
            is no database file to back up yet.
    """
    if not db_path.exists():
        return None

    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = backup_dir / f"{db_path.stem}-backup-{timestamp}{db_path.suffix}"
    shutil.copy2(db_path, backup_path)
    logger.info(f"Backed up {db_path} to {backup_path}")
    return backup_path
