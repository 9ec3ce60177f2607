import duckdb
import logging

from . import schema
from .connection import ConnectionHandler
from ..exceptions import DatabaseConnectionError, SchemaInitializationError

logger = logging.getLogger(__name__)

_TABLES = ("card_progress", "cards", "decks")


class SchemaManager:
    """Creates the vocabcore tables and guards their destructive rebuild."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Create all tables in one transaction; existing tables are kept.

        With ``force_recreate_tables`` the tables are dropped first, which is
        refused for a file database that still holds data.

        Raises:
            DatabaseConnectionError: When forcing recreation in read-only mode.
            SchemaInitializationError: When the DDL fails.
        """
        if self._skip_for_read_only(force_recreate_tables):
            return

        conn = self._handler.get_connection()
        if force_recreate_tables:
            self._ensure_no_data(conn)
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                if force_recreate_tables:
                    self._recreate_tables(cursor)
                cursor.execute(schema.DB_SCHEMA_SQL)
                cursor.commit()
            logger.info(
                f"Database schema at {self._handler.db_path_resolved} initialized successfully (or already exists)."  # noqa: E501
            )
        except duckdb.Error as e:
            logger.error(
                f"Error initializing database schema at {self._handler.db_path_resolved}: {e}"  # noqa: E501
            )
            try:
                conn.rollback()
                logger.info(
                    "Transaction rolled back due to schema initialization error."  # noqa: E501
                )
            except duckdb.Error as rb_err:
                logger.error(f"Failed to rollback transaction: {rb_err}")
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e

    def _skip_for_read_only(self, force_recreate_tables: bool) -> bool:
        if not self._handler.read_only:
            return False
        if force_recreate_tables:
            raise DatabaseConnectionError(
                "Cannot force_recreate_tables in read-only mode."
            )
        if not self._handler.is_memory:
            logger.warning(
                "Attempting to initialize schema in read-only mode. Skipping."
            )
            return True
        return False

    def _ensure_no_data(self, cursor: duckdb.DuckDBPyConnection) -> None:
        if self._handler.is_memory:
            return
        existing = {
            row[0]
            for row in cursor.execute(
                "SELECT table_name FROM information_schema.tables;"
            ).fetchall()
        }
        for table in _TABLES:
            if table not in existing:
                continue
            row = cursor.execute(f"SELECT COUNT(*) FROM {table};").fetchone()
            if row and row[0] > 0:
                message = (
                    f"Refusing to drop table '{table}' holding {row[0]} rows."
                )
                logger.error(message)
                raise SchemaInitializationError(message)

    def _recreate_tables(self, cursor: duckdb.DuckDBPyConnection) -> None:
        logger.warning(
            f"Forcing table recreation for {self._handler.db_path_resolved}."
        )
        for table in _TABLES:
            cursor.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
