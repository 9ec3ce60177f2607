"""
DuckDB storage for vocabcore: decks, cards and per-user card progress.
Implements the VocabularyDatabase facade used as the practice session's
card store.
"""

import duckdb
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union, cast

from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager
from ..constants import DEFAULT_HEALTH, MAX_HEALTH
from ..exceptions import (
    CardOperationError,
    DatabaseConnectionError,
    DatabaseError,
    DeckNotFoundError,
    DeckOperationError,
    MarshallingError,
    ProgressOperationError,
)
from ..models import CardProgress, Deck, VocabularyCard

# --- Logging Setup ---
logger = logging.getLogger(__name__)

# --- Helper Functions ---


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


def _rollback_quietly(conn: duckdb.DuckDBPyConnection, context: str) -> None:
    try:
        conn.rollback()
        logger.info(f"Transaction rolled back due to {context} error.")
    except duckdb.Error as rb_err:
        # A failed rollback must not hide the original error.
        logger.error(f"Failed to rollback transaction: {rb_err}")


class VocabularyDatabase:
    """
    Acts as a Facade for the database subsystem, providing a simple,
    high-level interface for deck, card and progress operations.

    It coordinates the ConnectionHandler, SchemaManager, and data marshalling
    utilities. Intended for use as a context manager.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Args:
            db_path: Path to the database file, or ':memory:'.
            read_only: If True, open the database in read-only mode.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"VocabularyDatabase initialized for DB at: {self._handler.db_path_resolved}"  # noqa: E501
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "VocabularyDatabase":
        """
        Open the connection, creating the schema when the database is new
        and writable.
        """
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    def _require_writable(self, operation: str) -> None:
        if self.read_only:
            raise DatabaseConnectionError(
                f"Cannot {operation} in read-only mode."
            )

    # --- Deck Operations ---

    def create_deck(self, deck: Deck) -> Deck:
        """
        Insert a new deck.

        Raises:
            DeckOperationError: If the insert fails (e.g. duplicate id).
        """
        self._require_writable("create decks")
        conn = self.get_connection()
        sql = """
        INSERT INTO decks (id, title, description, is_public, created_at)
        VALUES ($1, $2, $3, $4, $5);
        """
        try:
            conn.execute(sql, db_utils.deck_to_db_params(deck))
            logger.info(f"Created deck '{deck.title}' ({deck.id}).")
            return deck
        except duckdb.Error as e:
            logger.error(f"Error creating deck '{deck.title}': {e}")
            raise DeckOperationError(
                f"Failed to create deck: {e}", original_exception=e
            ) from e

    def get_deck(self, deck_id: uuid.UUID) -> Optional[Deck]:
        conn = self.get_connection()
        try:
            cursor = conn.execute("SELECT * FROM decks WHERE id = $1;", (deck_id,))
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching deck {deck_id}: {e}")
            raise DeckOperationError(
                f"Failed to fetch deck: {e}", original_exception=e
            ) from e
        if not rows:
            return None
        try:
            return db_utils.db_row_to_deck(rows[0])
        except MarshallingError as e:
            raise DeckOperationError(
                f"Failed to parse deck {deck_id} from database.",
                original_exception=e,
            ) from e

    def require_deck(self, deck_id: uuid.UUID) -> Deck:
        """
        Like get_deck, but a missing deck is an error.

        Raises:
            DeckNotFoundError: If no deck has this id.
        """
        deck = self.get_deck(deck_id)
        if deck is None:
            raise DeckNotFoundError(f"Deck {deck_id} not found.")
        return deck

    def list_decks(self) -> List[Deck]:
        """All decks ordered by title."""
        conn = self.get_connection()
        try:
            cursor = conn.execute("SELECT * FROM decks ORDER BY title, id;")
            rows = _rows_to_dicts(cursor)
            return [db_utils.db_row_to_deck(row) for row in rows]
        except MarshallingError as e:
            raise DeckOperationError(
                "Failed to parse decks from database.", original_exception=e
            ) from e
        except duckdb.Error as e:
            logger.error(f"Could not list decks due to a database error: {e}")
            raise DeckOperationError(
                "Could not list decks.", original_exception=e
            ) from e

    def delete_deck(self, deck_id: uuid.UUID) -> int:
        """
        Delete a deck together with its cards and all users' progress on them.

        Returns:
            int: Number of cards removed with the deck.

        Raises:
            DeckNotFoundError: If the deck does not exist.
            DeckOperationError: If the transaction fails.
        """
        self._require_writable("delete decks")
        self.require_deck(deck_id)
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(
                    "DELETE FROM card_progress WHERE deck_id = $1;", (deck_id,)
                )
                cursor.execute(
                    "DELETE FROM cards WHERE deck_id = $1 RETURNING id;",
                    (deck_id,),
                )
                removed_cards = len(cursor.fetchall())
                cursor.execute("DELETE FROM decks WHERE id = $1;", (deck_id,))
                cursor.commit()
            logger.info(
                f"Deleted deck {deck_id} with {removed_cards} cards."
            )
            return removed_cards
        except duckdb.Error as e:
            logger.error(f"Failed to delete deck {deck_id}: {e}")
            _rollback_quietly(conn, "deck delete")
            raise DeckOperationError(
                f"Deck delete failed: {e}", original_exception=e
            ) from e

    # --- Card Operations ---

    _INSERT_CARD_SQL = """
        INSERT INTO cards (id, deck_id, front, back, example_sentence,
                           transcription, added_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        ON CONFLICT (id) DO UPDATE SET
            front = EXCLUDED.front,
            back = EXCLUDED.back,
            example_sentence = EXCLUDED.example_sentence,
            transcription = EXCLUDED.transcription;
        """

    def add_cards_batch(self, cards: Sequence[VocabularyCard]) -> int:
        """
        Insert (or update, by id) cards in a single transaction.

        Every referenced deck must exist.

        Returns:
            int: Number of cards written; an empty sequence is a no-op.

        Raises:
            DeckNotFoundError: If a card points at an unknown deck.
            CardOperationError: If the write fails.
        """
        if not cards:
            return 0
        self._require_writable("add cards")
        for deck_id in {card.deck_id for card in cards}:
            self.require_deck(deck_id)

        params = db_utils.cards_to_db_params_list(cards)
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.executemany(self._INSERT_CARD_SQL, params)
                cursor.commit()
            logger.info(f"Successfully added/updated {len(params)} cards.")
            return len(params)
        except duckdb.Error as e:
            logger.error(f"Error during batch card insert: {e}")
            _rollback_quietly(conn, "card insert")
            raise CardOperationError(
                f"Batch card insert failed: {e}", original_exception=e
            ) from e

    def get_card(self, card_id: uuid.UUID) -> Optional[VocabularyCard]:
        conn = self.get_connection()
        try:
            cursor = conn.execute("SELECT * FROM cards WHERE id = $1;", (card_id,))
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching card {card_id}: {e}")
            raise CardOperationError(
                f"Failed to fetch card: {e}", original_exception=e
            ) from e
        if not rows:
            return None
        try:
            return db_utils.db_row_to_card(rows[0])
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse card {card_id} from database.",
                original_exception=e,
            ) from e

    def get_cards_for_deck(self, deck_id: uuid.UUID) -> List[VocabularyCard]:
        """Cards of a deck ordered by id, the order the deck view uses."""
        conn = self.get_connection()
        sql = "SELECT * FROM cards WHERE deck_id = $1 ORDER BY id;"
        try:
            cursor = conn.execute(sql, (deck_id,))
            rows = _rows_to_dicts(cursor)
            return [
                db_utils.db_row_to_card(cast(Dict[str, Any], row))
                for row in rows
            ]
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse cards of deck {deck_id} from database.",
                original_exception=e,
            ) from e
        except duckdb.Error as e:
            logger.error(f"Error fetching cards for deck {deck_id}: {e}")
            raise CardOperationError(
                f"Failed to fetch cards: {e}", original_exception=e
            ) from e

    def delete_cards_by_ids_batch(self, card_ids: Sequence[uuid.UUID]) -> int:
        """
        Delete cards and every user's progress on them.

        Returns:
            int: Number of cards deleted.

        Raises:
            CardOperationError: If the database operation fails.
        """
        if not card_ids:
            return 0
        self._require_writable("delete cards")
        conn = self.get_connection()
        params = (list(card_ids),)
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(
                    "DELETE FROM card_progress "
                    "WHERE card_id IN (SELECT * FROM UNNEST(?));",
                    params,
                )
                cursor.execute(
                    "DELETE FROM cards WHERE id IN (SELECT * FROM UNNEST(?)) "
                    "RETURNING id;",
                    params,
                )
                deleted = len(cursor.fetchall())
                cursor.commit()
            logger.info(f"Successfully deleted {deleted} cards.")
            return deleted
        except duckdb.Error as e:
            logger.error(f"Failed to delete cards: {e}")
            _rollback_quietly(conn, "card delete")
            raise CardOperationError(
                f"Batch card delete failed: {e}", original_exception=e
            ) from e

    # --- Progress Operations ---

    def get_progress(
        self, user_id: str, deck_id: uuid.UUID
    ) -> List[CardProgress]:
        """A user's progress rows for one deck."""
        conn = self.get_connection()
        sql = """
        SELECT user_id, card_id, deck_id, health, last_reviewed_at
        FROM card_progress
        WHERE user_id = $1 AND deck_id = $2
        ORDER BY card_id;
        """
        try:
            cursor = conn.execute(sql, (user_id, deck_id))
            rows = _rows_to_dicts(cursor)
            return [db_utils.db_row_to_progress(row) for row in rows]
        except MarshallingError as e:
            raise ProgressOperationError(
                f"Failed to parse progress for user '{user_id}'.",
                original_exception=e,
            ) from e
        except duckdb.Error as e:
            logger.error(
                f"Error fetching progress for user '{user_id}', "
                f"deck {deck_id}: {e}"
            )
            raise ProgressOperationError(
                f"Failed to fetch progress: {e}", original_exception=e
            ) from e

    _UPSERT_PROGRESS_SQL = """
        INSERT INTO card_progress (user_id, card_id, deck_id, health,
                                   last_reviewed_at)
        VALUES ($1, $2, $3, $4, $5)
        ON CONFLICT (user_id, card_id) DO UPDATE SET
            deck_id = EXCLUDED.deck_id,
            health = EXCLUDED.health,
            last_reviewed_at = EXCLUDED.last_reviewed_at;
        """

    def upsert_progress(self, progress: CardProgress) -> CardProgress:
        """
        Write a progress row, replacing the user's previous row for the card.

        Raises:
            ProgressOperationError: If the write fails.
        """
        self._require_writable("save progress")
        conn = self.get_connection()
        try:
            conn.execute(
                self._UPSERT_PROGRESS_SQL,
                db_utils.progress_to_db_params(progress),
            )
            logger.debug(
                f"Saved progress of card {progress.card_id} for user "
                f"'{progress.user_id}': health {progress.health}."
            )
            return progress
        except duckdb.Error as e:
            logger.error(
                f"Error saving progress for card {progress.card_id}: {e}"
            )
            raise ProgressOperationError(
                f"Failed to save progress: {e}", original_exception=e
            ) from e

    # --- Card store contract used by PracticeSession ---

    def load_cards(
        self, deck_id: uuid.UUID, user_id: str
    ) -> Tuple[List[VocabularyCard], List[CardProgress]]:
        """
        A deck's cards and the user's progress on them.

        Raises:
            DeckNotFoundError: If the deck does not exist.
        """
        self.require_deck(deck_id)
        return (
            self.get_cards_for_deck(deck_id),
            self.get_progress(user_id, deck_id),
        )

    def persist_review(
        self,
        user_id: str,
        card_id: uuid.UUID,
        deck_id: uuid.UUID,
        new_health: int,
        reviewed_at: Optional[datetime] = None,
    ) -> CardProgress:
        """Record the outcome of one review as the user's latest progress."""
        try:
            progress = CardProgress(
                user_id=user_id,
                card_id=card_id,
                deck_id=deck_id,
                health=new_health,
                last_reviewed_at=reviewed_at or datetime.now(timezone.utc),
            )
        except ValueError as e:
            raise ProgressOperationError(
                f"Invalid review for card {card_id}: {e}", original_exception=e
            ) from e
        return self.upsert_progress(progress)

    # --- Statistics ---

    def get_deck_stats(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Per-deck counts for a user.

        Returns:
            List[dict]: One entry per deck with keys ``deck_id``, ``title``,
            ``card_count``, ``reviewed_count``, ``mastered_count`` and
            ``average_health`` (None when the deck has no cards).
        """
        conn = self.get_connection()
        sql = """
        SELECT
            d.id AS deck_id,
            d.title AS title,
            COUNT(c.id) AS card_count,
            COUNT(p.card_id) AS reviewed_count,
            COUNT(CASE WHEN p.health >= $2 THEN 1 END) AS mastered_count,
            AVG(
                CASE WHEN c.id IS NOT NULL THEN COALESCE(p.health, $3) END
            ) AS average_health
        FROM decks d
        LEFT JOIN cards c ON c.deck_id = d.id
        LEFT JOIN card_progress p ON p.card_id = c.id AND p.user_id = $1
        GROUP BY d.id, d.title
        ORDER BY d.title, d.id;
        """
        try:
            cursor = conn.execute(sql, (user_id, MAX_HEALTH, DEFAULT_HEALTH))
            return _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Could not retrieve deck stats: {e}")
            raise DatabaseError(
                "Could not retrieve deck stats.", original_exception=e
            ) from e
