import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class ConnectionHandler:
    """Opens, reuses and closes the DuckDB connection of one database."""

    def __init__(self, db_path: Union[str, Path]):
        """
        Args:
            db_path: Path to the database file, or ":memory:" for a private
                in-memory database.
        """
        self.is_memory: bool = str(db_path).lower() == MEMORY_DB
        self.db_path_resolved: Path = (
            Path(MEMORY_DB) if self.is_memory else Path(db_path).resolve()
        )
        self.is_new_db: bool = False
        self._connection: Optional[duckdb.DuckDBPyConnection] = None

    def _prepare_location(self) -> None:
        """Record whether the database is new and create its directory."""
        if self.is_memory:
            self.is_new_db = True
            return
        self.is_new_db = not self.db_path_resolved.exists()
        self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting on first use.

        Raises:
            DatabaseConnectionError: If DuckDB cannot open the database.
        """
        if self._connection is not None:
            return self._connection

        try:
            self._prepare_location()
            self._connection = duckdb.connect(
                database=str(self.db_path_resolved)
            )
        except (duckdb.Error, OSError) as e:
            raise DatabaseConnectionError(
                f"Failed to connect to database at "
                f"{self.db_path_resolved}: {e}",
                original_exception=e,
            ) from e
        logger.info(f"Connected to database at {self.db_path_resolved}.")
        return self._connection

    def close_connection(self) -> None:
        """Close the connection if open; a later call reconnects."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
            logger.info(f"Closed database at {self.db_path_resolved}.")
        except duckdb.Error as e:
            logger.error(f"Error closing the database connection: {e}")
