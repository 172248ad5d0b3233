"""
DuckDB database interactions for studycards.
Implements the FlashcardDatabase facade over flashcards and study sessions.
"""

import duckdb
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar, Union

from ..exceptions import (
    CardNotFoundError,
    CardOperationError,
    DatabaseError,
    MarshallingError,
    SessionOperationError,
)
from ..models import Flashcard, FlashcardDraft, StudySessionRecord
from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager

# --- Logging Setup ---
logger = logging.getLogger(__name__)

T = TypeVar("T")

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


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlashcardDatabase:
    """
    Acts as a Facade for the database subsystem, providing a simple, high-level
    interface for flashcard and study-session storage.

    It coordinates the ConnectionHandler, SchemaManager, and data marshalling
    utilities. Intended for use as a context manager.
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Args:
            db_path: Path to the database file. Use ':memory:' for an
                in-memory database.
        """
        self._handler = ConnectionHandler(db_path=db_path)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"FlashcardDatabase initialized for DB at: {self._handler.db_path_resolved}"  # noqa: E501
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "FlashcardDatabase":
        """
        Open the connection and initialize the schema if the database was
        just created.
        """
        self.get_connection()
        if self._handler.is_new_db:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ensures the connection is closed on exiting the context."""
        self.close_connection()

    def initialize_schema(self) -> None:
        self._schema_manager.initialize_schema()

    # --- Transaction helpers ---

    def _execute_write(
        self,
        action: str,
        error_cls: Type[DatabaseError],
        work: Callable[[duckdb.DuckDBPyConnection], T],
    ) -> T:
        """
        Run `work` inside a transaction on a fresh cursor.

        DuckDB errors are logged, the transaction rolled back, and the error
        re-raised as `error_cls`. Other exceptions roll back and propagate
        unchanged.
        """
        conn = self.get_connection()
        with conn.cursor() as cursor:
            cursor.begin()
            try:
                result = work(cursor)
                cursor.commit()
                return result
            except duckdb.Error as e:
                logger.error(f"Failed to {action}: {e}")
                self._rollback(cursor, action)
                raise error_cls(
                    f"Failed to {action}: {e}", original_exception=e
                ) from e
            except Exception:
                self._rollback(cursor, action)
                raise

    @staticmethod
    def _rollback(cursor: duckdb.DuckDBPyConnection, action: str) -> None:
        try:
            cursor.rollback()
            logger.info(f"Transaction rolled back due to error in {action}.")
        except duckdb.Error as rb_err:
            # Keep the original error as the one raised.
            logger.error(f"Failed to rollback transaction: {rb_err}")

    def _fetch_flashcards(
        self, sql: str, params: Sequence[Any], context: str
    ) -> List[Flashcard]:
        conn = self.get_connection()
        try:
            rows = _rows_to_dicts(conn.execute(sql, params))
        except duckdb.Error as e:
            logger.error(f"Error fetching {context}: {e}")
            raise CardOperationError(
                f"Failed to fetch {context}: {e}", original_exception=e
            ) from e
        try:
            return [db_utils.db_row_to_flashcard(row) for row in rows]
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse {context} from database.",
                original_exception=e,
            ) from e

    # --- Flashcard Operations ---

    _INSERT_FLASHCARD_SQL = """
        INSERT INTO flashcards (id, user_id, question, answer, category, difficulty,
                                tags, created_at, updated_at, last_reviewed_at,
                                review_count, success_count, next_review_date)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13);
        """

    def save_flashcards(
        self, drafts: Sequence[FlashcardDraft], user_id: str
    ) -> List[Flashcard]:
        """
        Store generated flashcards for a user in a single transaction.

        New cards start with zero review and success counts.

        Returns:
            The stored Flashcard models, in input order. An empty input is a
            no-op returning [].

        Raises:
            CardOperationError: If the insert fails.
        """
        if not drafts:
            return []

        now = _utcnow()
        cards = [
            Flashcard(
                **draft.model_dump(include=set(FlashcardDraft.model_fields)),
                user_id=user_id,
                created_at=now,
                updated_at=now,
            )
            for draft in drafts
        ]
        params = [db_utils.flashcard_to_db_params_tuple(c) for c in cards]

        def work(cursor):
            cursor.executemany(self._INSERT_FLASHCARD_SQL, params)

        self._execute_write("save flashcards", CardOperationError, work)
        logger.info(f"Saved {len(cards)} flashcards for user {user_id}.")
        return cards

    def save_flashcard(
        self, draft: FlashcardDraft, user_id: str
    ) -> Flashcard:
        return self.save_flashcards([draft], user_id)[0]

    def get_flashcard(self, flashcard_id: str) -> Optional[Flashcard]:
        cards = self._fetch_flashcards(
            "SELECT * FROM flashcards WHERE id = $1;",
            (flashcard_id,),
            f"flashcard {flashcard_id}",
        )
        return cards[0] if cards else None

    def get_flashcards(self, user_id: str) -> List[Flashcard]:
        """All of a user's flashcards, newest first."""
        return self._fetch_flashcards(
            "SELECT * FROM flashcards WHERE user_id = $1 "
            "ORDER BY created_at DESC, id;",
            (user_id,),
            "flashcards",
        )

    def get_flashcards_by_category(
        self, category: str, user_id: str
    ) -> List[Flashcard]:
        """A user's flashcards in one category, newest first."""
        return self._fetch_flashcards(
            "SELECT * FROM flashcards WHERE category = $1 AND user_id = $2 "
            "ORDER BY created_at DESC, id;",
            (category, user_id),
            f"flashcards in category '{category}'",
        )

    _UPDATE_REVIEW_SQL = """
        UPDATE flashcards
        SET review_count = review_count + 1,
            success_count = success_count + CASE WHEN $2 THEN 1 ELSE 0 END,
            last_reviewed_at = $3,
            updated_at = $3,
            next_review_date = COALESCE($4, next_review_date)
        WHERE id = $1
        RETURNING *;
        """

    def update_flashcard_review(
        self,
        flashcard_id: str,
        success: bool,
        next_review_date: Optional[datetime] = None,
    ) -> Flashcard:
        """
        Record one graded review of a flashcard.

        Increments `review_count`, and `success_count` when `success` is
        True, stamps `last_reviewed_at`, and stores `next_review_date` if
        given.

        Returns:
            The updated Flashcard.

        Raises:
            CardNotFoundError: If no flashcard has this id.
            CardOperationError: If the update fails.
        """
        reviewed_at = _utcnow()

        def work(cursor):
            cursor.execute(
                self._UPDATE_REVIEW_SQL,
                (flashcard_id, success, reviewed_at, next_review_date),
            )
            rows = _rows_to_dicts(cursor)
            if not rows:
                raise CardNotFoundError(f"Flashcard {flashcard_id} not found.")
            return rows[0]

        row = self._execute_write(
            "update flashcard review", CardOperationError, work
        )
        logger.debug(
            f"Recorded {'successful' if success else 'failed'} review "
            f"for flashcard {flashcard_id}."
        )
        try:
            return db_utils.db_row_to_flashcard(row)
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse flashcard {flashcard_id} after update.",
                original_exception=e,
            ) from e

    def update_flashcard_content(
        self, flashcard_id: str, draft: FlashcardDraft
    ) -> Flashcard:
        """
        Replace the question, answer, category, difficulty and tags of a
        stored flashcard. Review history is kept.

        Raises:
            CardNotFoundError: If no flashcard has this id.
            CardOperationError: If the update fails.
        """
        params = (
            flashcard_id,
            draft.question,
            draft.answer,
            draft.category,
            draft.difficulty.value,
            list(draft.tags) if draft.tags else None,
            _utcnow(),
        )

        def work(cursor):
            cursor.execute(
                """
                UPDATE flashcards
                SET question = $2, answer = $3, category = $4,
                    difficulty = $5, tags = $6, updated_at = $7
                WHERE id = $1
                RETURNING *;
                """,
                params,
            )
            rows = _rows_to_dicts(cursor)
            if not rows:
                raise CardNotFoundError(f"Flashcard {flashcard_id} not found.")
            return rows[0]

        row = self._execute_write(
            "update flashcard content", CardOperationError, work
        )
        logger.info(f"Updated content of flashcard {flashcard_id}.")
        try:
            return db_utils.db_row_to_flashcard(row)
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse flashcard {flashcard_id} after update.",
                original_exception=e,
            ) from e

    def delete_flashcard(self, flashcard_id: str) -> bool:
        """Delete a flashcard. Returns True if a row was removed."""

        def work(cursor):
            cursor.execute(
                "DELETE FROM flashcards WHERE id = $1 RETURNING id;",
                (flashcard_id,),
            )
            return bool(cursor.fetchall())

        deleted = self._execute_write(
            "delete flashcard", CardOperationError, work
        )
        if deleted:
            logger.info(f"Deleted flashcard {flashcard_id}.")
        return deleted

    def get_categories(self, user_id: str) -> List[str]:
        """Distinct non-empty categories of a user's flashcards, sorted."""
        conn = self.get_connection()
        sql = (
            "SELECT DISTINCT category FROM flashcards "
            "WHERE user_id = $1 AND category <> '' ORDER BY category;"
        )
        try:
            return [row[0] for row in conn.execute(sql, (user_id,)).fetchall()]
        except duckdb.Error as e:
            logger.error(f"Could not fetch categories: {e}")
            raise CardOperationError(
                "Could not fetch categories.", original_exception=e
            ) from e

    def get_flashcard_stats(self, user_id: str) -> Dict[str, Any]:
        """
        Aggregate statistics over a user's flashcards.

        Returns:
            dict with keys "total", "easy", "medium", "hard",
            "total_reviews", "total_success" and "success_rate" (percentage,
            0 when nothing has been reviewed).
        """
        conn = self.get_connection()
        sql = """
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE difficulty = 'easy') AS easy,
                COUNT(*) FILTER (WHERE difficulty = 'medium') AS medium,
                COUNT(*) FILTER (WHERE difficulty = 'hard') AS hard,
                COALESCE(SUM(review_count), 0) AS total_reviews,
                COALESCE(SUM(success_count), 0) AS total_success
            FROM flashcards
            WHERE user_id = $1;
        """
        try:
            stats = _rows_to_dicts(conn.execute(sql, (user_id,)))[0]
        except duckdb.Error as e:
            logger.error(f"Error fetching flashcard stats: {e}")
            raise CardOperationError(
                f"Failed to fetch flashcard stats: {e}", original_exception=e
            ) from e

        stats = {key: int(value) for key, value in stats.items()}
        stats["success_rate"] = (
            stats["total_success"] / stats["total_reviews"] * 100
            if stats["total_reviews"] > 0
            else 0.0
        )
        return stats

    # --- Study Session Operations ---

    _INSERT_SESSION_SQL = """
        INSERT INTO study_sessions (id, user_id, name, flashcard_ids, created_at,
                                    last_studied_at, total_cards, completed_cards,
                                    accuracy_rate)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9);
        """

    def create_study_session(
        self, name: str, flashcard_ids: Sequence[str], user_id: str
    ) -> StudySessionRecord:
        """
        Store a new study session over `flashcard_ids` with nothing completed.

        Raises:
            SessionOperationError: If the insert fails.
        """
        record = StudySessionRecord(
            user_id=user_id,
            name=name,
            flashcard_ids=list(flashcard_ids),
            total_cards=len(flashcard_ids),
        )
        params = db_utils.session_record_to_db_params_tuple(record)

        def work(cursor):
            cursor.execute(self._INSERT_SESSION_SQL, params)

        self._execute_write(
            "create study session", SessionOperationError, work
        )
        logger.info(
            f"Created study session {record.id} '{name}' "
            f"with {record.total_cards} cards."
        )
        return record

    def update_study_session(
        self, session_id: str, completed_cards: int, accuracy_rate: float
    ) -> bool:
        """
        Record progress for a stored study session and stamp
        `last_studied_at`. Returns False if the session does not exist.
        """

        def work(cursor):
            cursor.execute(
                """
                UPDATE study_sessions
                SET completed_cards = $2, accuracy_rate = $3, last_studied_at = $4
                WHERE id = $1
                RETURNING id;
                """,
                (session_id, completed_cards, accuracy_rate, _utcnow()),
            )
            return bool(cursor.fetchall())

        updated = self._execute_write(
            "update study session", SessionOperationError, work
        )
        if not updated:
            logger.warning(f"Study session {session_id} not found for update.")
        return updated

    def get_study_sessions(self, user_id: str) -> List[StudySessionRecord]:
        """A user's stored study sessions, newest first."""
        conn = self.get_connection()
        sql = (
            "SELECT * FROM study_sessions WHERE user_id = $1 "
            "ORDER BY created_at DESC, id;"
        )
        try:
            rows = _rows_to_dicts(conn.execute(sql, (user_id,)))
        except duckdb.Error as e:
            logger.error(f"Error fetching study sessions: {e}")
            raise SessionOperationError(
                f"Failed to fetch study sessions: {e}", original_exception=e
            ) from e
        try:
            return [db_utils.db_row_to_session_record(row) for row in rows]
        except MarshallingError as e:
            raise SessionOperationError(
                "Failed to parse study sessions from database.",
                original_exception=e,
            ) from e
