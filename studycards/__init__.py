"""Studycards - generate flashcards from study notes and run study sessions."""

from .models import Difficulty, Flashcard, FlashcardDraft, StudySessionRecord
from .study_session import SessionSnapshot, StudySession
from .db import FlashcardDatabase
from .generator import FlashcardGenerator

__all__ = [
    "Difficulty",
    "Flashcard",
    "FlashcardDraft",
    "StudySessionRecord",
    "SessionSnapshot",
    "StudySession",
    "FlashcardDatabase",
    "FlashcardGenerator",
]
