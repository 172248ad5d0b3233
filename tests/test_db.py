"""
Test suite for studycards.db (FlashcardDatabase): schema, flashcard CRUD,
review updates, statistics, study sessions, backups and error handling.
"""

import pytest

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import duckdb

from studycards.db import FlashcardDatabase
from studycards.db.db_utils import backup_database, find_latest_backup
from studycards.exceptions import (
    CardNotFoundError,
    CardOperationError,
    DatabaseConnectionError,
)
from studycards.models import Difficulty, Flashcard


class TestSchema:
    def test_initialize_schema_is_idempotent(self, db_manager):
        db_manager.initialize_schema()
        tables = {
            row[0]
            for row in db_manager.get_connection()
            .execute("SELECT table_name FROM information_schema.tables")
            .fetchall()
        }
        assert {"flashcards", "study_sessions"} <= tables

    def test_context_manager_creates_schema_for_new_file(self, tmp_path):
        db_path = tmp_path / "nested" / "cards.db"
        with FlashcardDatabase(db_path) as db:
            assert db.get_flashcards("anyone") == []
        assert db_path.exists()

    def test_reopening_keeps_existing_data(self, tmp_path, sample_drafts):
        db_path = tmp_path / "cards.db"
        with FlashcardDatabase(db_path) as db:
            db.save_flashcards(sample_drafts, "user-1")

        with FlashcardDatabase(db_path) as db:
            db.initialize_schema()
            assert len(db.get_flashcards("user-1")) == 3

    def test_connection_reopens_after_close(self, db_manager):
        first = db_manager.get_connection()
        assert db_manager.get_connection() is first
        db_manager.close_connection()
        db_manager.close_connection()
        assert db_manager.get_connection() is not first

    def test_connection_failure_is_wrapped(self, tmp_path):
        db = FlashcardDatabase(tmp_path / "cards.db")
        with patch(
            "studycards.db.connection.duckdb.connect",
            side_effect=duckdb.IOException("disk on fire"),
        ):
            with pytest.raises(DatabaseConnectionError, match="disk on fire"):
                db.get_connection()


class TestFlashcards:
    def test_save_and_fetch(self, db_manager, sample_drafts):
        saved = db_manager.save_flashcards(sample_drafts, "user-1")

        assert len(saved) == 3
        assert all(isinstance(c, Flashcard) for c in saved)
        assert all(c.user_id == "user-1" for c in saved)
        assert all(c.review_count == 0 and c.success_count == 0 for c in saved)

        fetched = db_manager.get_flashcard(saved[0].id)
        assert fetched is not None
        assert fetched.question == sample_drafts[0].question
        assert fetched.answer == sample_drafts[0].answer
        assert fetched.category == "Biology"
        assert fetched.difficulty is Difficulty.Medium
        assert fetched.tags == ["plants", "energy"]

    def test_empty_tags_round_trip(self, db_manager, sample_drafts):
        saved = db_manager.save_flashcards(sample_drafts, "user-1")
        assert db_manager.get_flashcard(saved[2].id).tags == []

    def test_save_empty_is_noop(self, db_manager):
        assert db_manager.save_flashcards([], "user-1") == []

    def test_save_single(self, db_manager, sample_drafts):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")
        assert db_manager.get_flashcard(card.id) is not None

    def test_get_missing_returns_none(self, db_manager):
        assert db_manager.get_flashcard("nope") is None

    def test_flashcards_scoped_to_user(self, db_manager, sample_drafts):
        db_manager.save_flashcards(sample_drafts[:2], "user-1")
        db_manager.save_flashcards(sample_drafts[2:], "user-2")

        assert len(db_manager.get_flashcards("user-1")) == 2
        assert len(db_manager.get_flashcards("user-2")) == 1
        assert db_manager.get_flashcards("user-3") == []

    def test_get_flashcards_newest_first(self, db_manager, sample_drafts):
        first = db_manager.save_flashcard(sample_drafts[0], "user-1")
        with patch(
            "studycards.db.database._utcnow",
            return_value=datetime.now(timezone.utc) + timedelta(hours=1),
        ):
            second = db_manager.save_flashcard(sample_drafts[1], "user-1")

        ids = [c.id for c in db_manager.get_flashcards("user-1")]
        assert ids == [second.id, first.id]

    def test_get_by_category(self, db_manager, sample_drafts):
        db_manager.save_flashcards(sample_drafts, "user-1")
        biology = db_manager.get_flashcards_by_category("Biology", "user-1")
        assert len(biology) == 2
        assert {c.category for c in biology} == {"Biology"}
        assert db_manager.get_flashcards_by_category("Biology", "user-2") == []

    def test_get_categories(self, db_manager, sample_drafts):
        db_manager.save_flashcards(sample_drafts, "user-1")
        assert db_manager.get_categories("user-1") == ["Biology", "Physics"]
        assert db_manager.get_categories("user-2") == []

    def test_delete(self, db_manager, sample_drafts):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")
        assert db_manager.delete_flashcard(card.id) is True
        assert db_manager.get_flashcard(card.id) is None
        assert db_manager.delete_flashcard(card.id) is False

    def test_duplicate_id_raises_card_operation_error(
        self, db_manager, sample_drafts
    ):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")
        duplicate = card.model_copy()
        with patch("studycards.db.database.Flashcard", return_value=duplicate):
            with pytest.raises(CardOperationError):
                db_manager.save_flashcards([sample_drafts[1]], "user-1")
        assert len(db_manager.get_flashcards("user-1")) == 1


class TestReviewUpdates:
    def test_successful_review(self, db_manager, sample_drafts):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")

        updated = db_manager.update_flashcard_review(card.id, success=True)

        assert updated.review_count == 1
        assert updated.success_count == 1
        assert updated.last_reviewed_at is not None
        assert updated.next_review_date is None

    def test_failed_review(self, db_manager, sample_drafts):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")

        db_manager.update_flashcard_review(card.id, success=True)
        updated = db_manager.update_flashcard_review(card.id, success=False)

        assert updated.review_count == 2
        assert updated.success_count == 1
        stored = db_manager.get_flashcard(card.id)
        assert stored.review_count == 2
        assert stored.success_count == 1

    def test_next_review_date_is_stored(self, db_manager, sample_drafts):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")
        next_date = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

        updated = db_manager.update_flashcard_review(
            card.id, success=True, next_review_date=next_date
        )
        assert updated.next_review_date == next_date

        # A later review without a date keeps the stored one.
        again = db_manager.update_flashcard_review(card.id, success=False)
        assert again.next_review_date == next_date

    def test_unknown_card_raises(self, db_manager):
        with pytest.raises(CardNotFoundError):
            db_manager.update_flashcard_review("missing", success=True)


class TestContentUpdates:
    def test_content_is_replaced_and_history_kept(
        self, db_manager, sample_drafts
    ):
        card = db_manager.save_flashcard(sample_drafts[0], "user-1")
        db_manager.update_flashcard_review(card.id, success=True)
        db_manager.update_flashcard_review(card.id, success=False)

        updated = db_manager.update_flashcard_content(card.id, sample_drafts[2])

        assert updated.id == card.id
        assert updated.question == "What is Newton's second law?"
        assert updated.category == "Physics"
        assert updated.difficulty == Difficulty.Hard
        assert updated.tags == []
        assert updated.review_count == 2
        assert updated.success_count == 1
        assert updated.user_id == "user-1"

        stored = db_manager.get_flashcard(card.id)
        assert stored.answer == "Force equals mass times acceleration."
        assert stored.review_count == 2

    def test_unknown_card_raises(self, db_manager, sample_drafts):
        with pytest.raises(CardNotFoundError):
            db_manager.update_flashcard_content("missing", sample_drafts[0])


class TestStats:
    def test_stats_empty(self, db_manager):
        stats = db_manager.get_flashcard_stats("user-1")
        assert stats == {
            "total": 0,
            "easy": 0,
            "medium": 0,
            "hard": 0,
            "total_reviews": 0,
            "total_success": 0,
            "success_rate": 0.0,
        }

    def test_stats_counts_and_success_rate(self, db_manager, sample_drafts):
        saved = db_manager.save_flashcards(sample_drafts, "user-1")
        db_manager.update_flashcard_review(saved[0].id, success=True)
        db_manager.update_flashcard_review(saved[0].id, success=True)
        db_manager.update_flashcard_review(saved[1].id, success=True)
        db_manager.update_flashcard_review(saved[2].id, success=False)

        stats = db_manager.get_flashcard_stats("user-1")

        assert stats["total"] == 3
        assert stats["easy"] == 1
        assert stats["medium"] == 1
        assert stats["hard"] == 1
        assert stats["total_reviews"] == 4
        assert stats["total_success"] == 3
        assert stats["success_rate"] == 75.0


class TestStudySessions:
    def test_create_and_list(self, db_manager):
        record = db_manager.create_study_session(
            "Evening review", ["a", "b", "c"], "user-1"
        )

        assert record.total_cards == 3
        assert record.completed_cards == 0

        sessions = db_manager.get_study_sessions("user-1")
        assert len(sessions) == 1
        assert sessions[0].id == record.id
        assert sessions[0].name == "Evening review"
        assert sessions[0].flashcard_ids == ["a", "b", "c"]
        assert db_manager.get_study_sessions("user-2") == []

    def test_update(self, db_manager):
        record = db_manager.create_study_session("s", ["a", "b"], "user-1")

        assert db_manager.update_study_session(record.id, 2, 50.0) is True

        stored = db_manager.get_study_sessions("user-1")[0]
        assert stored.completed_cards == 2
        assert stored.accuracy_rate == 50.0
        assert stored.last_studied_at is not None

    def test_update_missing_returns_false(self, db_manager):
        assert db_manager.update_study_session("missing", 1, 100.0) is False

    def test_empty_session(self, db_manager):
        record = db_manager.create_study_session("empty", [], "user-1")
        stored = db_manager.get_study_sessions("user-1")[0]
        assert stored.id == record.id
        assert stored.flashcard_ids == []


class TestBackups:
    def test_backup_missing_db_returns_path(self, tmp_path):
        db_path = tmp_path / "missing.db"
        assert backup_database(db_path) == db_path
        assert find_latest_backup(db_path) is None

    def test_backup_and_find_latest(self, tmp_path: Path):
        db_path = tmp_path / "cards.db"
        with FlashcardDatabase(db_path):
            pass

        backup_path = backup_database(db_path)

        assert backup_path.exists()
        assert backup_path.parent.name == "backups"
        assert backup_path.name.startswith("cards-backup-")
        assert find_latest_backup(db_path) == backup_path

    def test_find_latest_picks_newest_name(self, tmp_path: Path):
        db_path = tmp_path / "cards.db"
        backup_dir = tmp_path / "backups"
        backup_dir.mkdir()
        older = backup_dir / "cards-backup-20240101-080000.db"
        newer = backup_dir / "cards-backup-20240102-080000.db"
        older.write_bytes(b"")
        newer.write_bytes(b"")

        assert find_latest_backup(db_path) == newer
