"""Database package for studycards.

Only FlashcardDatabase is exported as the public API.
"""

from .database import FlashcardDatabase

__all__ = ["FlashcardDatabase"]
