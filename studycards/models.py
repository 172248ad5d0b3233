"""
Pydantic models for flashcards and stored study sessions.
"""

from __future__ import annotations

import uuid
from enum import Enum
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    """
    Difficulty label assigned to a flashcard at generation time.
    """

    Easy = "easy"
    Medium = "medium"
    Hard = "hard"


class FlashcardDraft(BaseModel):
    """
    Flashcard content as produced by the generator, before it is stored.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    question: str = Field(..., min_length=1, description="Question text.")
    answer: str = Field(..., min_length=1, description="Answer text.")
    category: str = Field(
        ..., min_length=1, description="Free-text topic grouping."
    )
    difficulty: Difficulty = Field(
        ..., description="One of easy, medium or hard."
    )
    tags: List[str] = Field(
        default_factory=list,
        description="Ordered free-text labels.",
    )

    @field_validator("question", "answer", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank values."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Value must not be blank.")
        return stripped

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v):
        """Drop non-string and blank tags; a non-list value becomes []."""
        if not isinstance(v, (list, tuple)):
            return []
        return [t.strip() for t in v if isinstance(t, str) and t.strip()]


class Flashcard(FlashcardDraft):
    """
    A stored flashcard owned by a user.

    The study session only reads `id` and `difficulty`; review counters are
    updated by the storage layer when a grade is persisted.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        min_length=1,
        description="Opaque unique identifier.",
    )
    user_id: str = Field(..., min_length=1, description="Owning user.")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    last_reviewed_at: Optional[datetime] = Field(
        default=None,
        description="UTC timestamp of the most recent graded review.",
    )
    review_count: int = Field(
        default=0,
        ge=0,
        description="Times the card has been graded across all sessions.",
    )
    success_count: int = Field(
        default=0,
        ge=0,
        description="Times the card has been graded correct.",
    )
    next_review_date: Optional[datetime] = Field(
        default=None,
        description="Optional next review date recorded by the caller.",
    )

    @model_validator(mode="after")
    def check_success_not_above_reviews(self) -> "Flashcard":
        if self.success_count > self.review_count:
            raise ValueError(
                f"success_count ({self.success_count}) cannot exceed "
                f"review_count ({self.review_count})."
            )
        return self

    @property
    def success_rate(self) -> float:
        """Percentage of reviews graded correct, 0 when never reviewed."""
        if self.review_count == 0:
            return 0.0
        return self.success_count / self.review_count * 100


class StudySessionRecord(BaseModel):
    """
    Persisted summary of a study session.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    flashcard_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    last_studied_at: Optional[datetime] = None
    total_cards: int = Field(default=0, ge=0)
    completed_cards: int = Field(default=0, ge=0)
    accuracy_rate: float = Field(default=0.0, ge=0.0, le=100.0)
