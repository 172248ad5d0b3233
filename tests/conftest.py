import sys
import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator, List

from studycards.models import Flashcard, FlashcardDraft
from studycards.db import FlashcardDatabase


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(request):
    """
    Run each test with its tmpdir as working directory, so no stray .env file
    or database from the developer's checkout is picked up.
    """
    tmpdir = request.getfixturevalue("tmpdir")
    sys.path.insert(0, str(tmpdir))
    with tmpdir.as_cwd():
        yield


@pytest.fixture(autouse=True)
def clean_studycards_env(monkeypatch):
    """Remove STUDYCARDS_* variables set in the outer environment."""
    import os

    for key in list(os.environ):
        if key.startswith("STUDYCARDS_"):
            monkeypatch.delenv(key, raising=False)


class FakeClock:
    """Deterministic clock that advances only when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


def make_card(question: str = "What is 2+2?", **overrides) -> Flashcard:
    data = {
        "question": question,
        "answer": "4",
        "category": "Math",
        "difficulty": "easy",
        "tags": ["arithmetic"],
        "user_id": "user-1",
    }
    data.update(overrides)
    return Flashcard(**data)


@pytest.fixture
def sample_cards() -> List[Flashcard]:
    """Three cards A, B and C with distinct ids."""
    return [
        make_card("Card A?", id="card-a", answer="A"),
        make_card("Card B?", id="card-b", answer="B", difficulty="medium"),
        make_card("Card C?", id="card-c", answer="C", difficulty="hard"),
    ]


@pytest.fixture
def sample_drafts() -> List[FlashcardDraft]:
    return [
        FlashcardDraft(
            question="What is photosynthesis?",
            answer="Conversion of light energy into chemical energy.",
            category="Biology",
            difficulty="medium",
            tags=["plants", "energy"],
        ),
        FlashcardDraft(
            question="What organelle hosts photosynthesis?",
            answer="The chloroplast.",
            category="Biology",
            difficulty="easy",
            tags=["plants"],
        ),
        FlashcardDraft(
            question="What is Newton's second law?",
            answer="Force equals mass times acceleration.",
            category="Physics",
            difficulty="hard",
            tags=[],
        ),
    ]


# --- Database Fixtures ---
@pytest.fixture
def db_manager() -> Generator[FlashcardDatabase, None, None]:
    """An in-memory FlashcardDatabase with its schema initialized."""
    db = FlashcardDatabase(":memory:")
    db.initialize_schema()
    try:
        yield db
    finally:
        db.close_connection()


@pytest.fixture
def card_factory():
    """Build Flashcards with sensible defaults; keyword arguments override."""
    return make_card
