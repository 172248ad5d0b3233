import duckdb
import logging

from .connection import ConnectionHandler
from . import schema
from ..exceptions import SchemaInitializationError

logger = logging.getLogger(__name__)


class SchemaManager:
    """Creates the studycards tables and indexes."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self) -> None:
        """
        Create any missing tables and indexes in one transaction. Existing
        tables and their rows are left untouched.

        Raises:
            SchemaInitializationError: If the DDL fails; nothing is applied.
        """
        conn = self._handler.get_connection()
        with conn.cursor() as cursor:
            cursor.begin()
            try:
                cursor.execute(schema.DB_SCHEMA_SQL)
                cursor.commit()
            except duckdb.Error as e:
                logger.error(
                    f"Error initializing database schema at "
                    f"{self._handler.db_path_resolved}: {e}"
                )
                try:
                    cursor.rollback()
                except duckdb.Error as rb_err:
                    logger.error(f"Failed to rollback transaction: {rb_err}")
                raise SchemaInitializationError(
                    f"Failed to initialize schema: {e}", original_exception=e
                ) from e
        logger.info(
            f"Database schema at {self._handler.db_path_resolved} is ready."
        )
