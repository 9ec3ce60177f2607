import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class ConnectionHandler:
    """Owns a single DuckDB connection and reopens it on demand."""

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Parameters:
            db_path: Database file, or ":memory:" (any case) for a transient
                in-memory database. File paths are resolved to absolute paths.
            read_only: Open the connection in read-only mode.
        """
        if isinstance(db_path, str) and db_path.lower() == MEMORY_PATH:
            self.db_path_resolved = Path(MEMORY_PATH)
            logger.info("Using in-memory DuckDB database.")
        else:
            self.db_path_resolved = Path(db_path).resolve()
            logger.info(
                f"ConnectionHandler initialized for DB at: {self.db_path_resolved}"  # noqa: E501
            )

        self.read_only: bool = read_only
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self.is_new_db: bool = False

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_PATH

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting first if needed.

        ``is_new_db`` is set when the database did not exist before this
        connection (always true for in-memory databases).

        Raises:
            DatabaseConnectionError: If DuckDB cannot open the database.
        """
        if self._connection is None:
            try:
                if self.is_memory:
                    self.is_new_db = True
                else:
                    self.is_new_db = not self.db_path_resolved.exists()
                    self.db_path_resolved.parent.mkdir(
                        parents=True, exist_ok=True
                    )

                self._connection = duckdb.connect(
                    database=str(self.db_path_resolved),
                    read_only=self.read_only,
                )
                logger.info("Successfully connected to the database.")
            except duckdb.Error as e:
                raise DatabaseConnectionError(
                    f"Failed to connect to database: {e}",
                    original_exception=e,
                ) from e
        return self._connection

    def close_connection(self) -> None:
        """Close the connection if open; a later call reconnects."""
        if self._connection:
            try:
                self._connection.close()
                logger.info(
                    f"Database connection to {self.db_path_resolved} closed."
                )
            except duckdb.Error as e:
                logger.error(f"Error closing the database connection: {e}")
            finally:
                self._connection = None

    def __enter__(self) -> duckdb.DuckDBPyConnection:
        return self.get_connection()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()
