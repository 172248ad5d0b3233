"""
Marshalling between the pydantic models and DuckDB rows, plus the
timestamped file backups used by the CLI.
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Flashcard, StudySessionRecord


def flashcard_to_db_params_tuple(card: Flashcard) -> Tuple:
    """
    Convert a Flashcard into a tuple suitable for database insertion.

    Returns:
        tuple: (id, user_id, question, answer, category, difficulty, tags,
                created_at, updated_at, last_reviewed_at, review_count,
                success_count, next_review_date)
    """
    return (
        card.id,
        card.user_id,
        card.question,
        card.answer,
        card.category,
        card.difficulty.value,
        list(card.tags) if card.tags else None,
        card.created_at,
        card.updated_at,
        card.last_reviewed_at,
        card.review_count,
        card.success_count,
        card.next_review_date,
    )


def db_row_to_flashcard(row_dict: Dict[str, Any]) -> Flashcard:
    """
    Create a Flashcard model from a database row dictionary.

    Raises:
        MarshallingError: If the row cannot be validated into a Flashcard.
    """
    data = row_dict.copy()
    tags_val = data.get("tags")
    data["tags"] = list(tags_val) if tags_val is not None else []

    try:
        return Flashcard(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse flashcard from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def session_record_to_db_params_tuple(record: StudySessionRecord) -> Tuple:
    """
    Serialize a StudySessionRecord into a tuple suitable for insertion.

    Returns:
        tuple: (id, user_id, name, flashcard_ids, created_at,
                last_studied_at, total_cards, completed_cards, accuracy_rate)
    """
    return (
        record.id,
        record.user_id,
        record.name,
        list(record.flashcard_ids) if record.flashcard_ids else None,
        record.created_at,
        record.last_studied_at,
        record.total_cards,
        record.completed_cards,
        record.accuracy_rate,
    )


def db_row_to_session_record(row_dict: Dict[str, Any]) -> StudySessionRecord:
    """
    Create a StudySessionRecord from a raw database row dictionary.

    Raises:
        MarshallingError: If model validation fails.
    """
    data = row_dict.copy()
    ids = data.get("flashcard_ids")
    data["flashcard_ids"] = list(ids) if ids is not None else []
    try:
        return StudySessionRecord(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Data validation failed for study session: {e}",
            original_exception=e,
        ) from e


def find_latest_backup(db_path: Path) -> Optional[Path]:
    """
    Locate the most recent backup file for the given database path.

    Backups live in a "backups" directory next to the database.

    Returns:
        Path or None: The latest backup, or None if there are none.
    """
    backup_dir = db_path.parent / "backups"
    if not backup_dir.exists():
        return None

    backup_files = list(
        backup_dir.glob(f"{db_path.stem}-backup-*{db_path.suffix}")
    )
    if not backup_files:
        return None

    # Names embed the timestamp, so the lexical maximum is the newest
    return max(backup_files, key=lambda p: p.name)


def backup_database(db_path: Path) -> Path:
    """
    Creates a timestamped backup of the database file.

    Returns:
        The path to the created backup, or `db_path` itself when there is no
        database file to back up yet.
    """
    if not db_path.exists():
        return db_path

    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_filename = f"{db_path.stem}-backup-{timestamp}{db_path.suffix}"
    backup_path = backup_dir / backup_filename

    shutil.copy2(db_path, backup_path)
    return backup_path
