"""
Filtering, searching and ordering of a user's flashcard collection.
"""

import random
from typing import Iterable, List, Optional, Sequence

from .models import Difficulty, Flashcard

SORT_FIELDS = ("created_at", "difficulty", "category", "review_count")
SORT_ORDERS = ("asc", "desc")

_DIFFICULTY_RANK = {
    Difficulty.Easy: 0,
    Difficulty.Medium: 1,
    Difficulty.Hard: 2,
}


def categories_of(cards: Iterable[Flashcard]) -> List[str]:
    """Distinct categories in first-seen order."""
    seen: List[str] = []
    for card in cards:
        if card.category and card.category not in seen:
            seen.append(card.category)
    return seen


def _matches(card: Flashcard, query: str) -> bool:
    return (
        query in card.question.lower()
        or query in card.answer.lower()
        or query in card.category.lower()
        or any(query in tag.lower() for tag in card.tags)
    )


def _sort_key(sort_by: str):
    if sort_by == "difficulty":
        return lambda c: _DIFFICULTY_RANK[c.difficulty]
    return lambda c: getattr(c, sort_by)


def filter_flashcards(
    cards: Sequence[Flashcard],
    category: Optional[str] = None,
    query: str = "",
    sort_by: str = "created_at",
    order: str = "desc",
) -> List[Flashcard]:
    """
    Return the cards matching `category` and `query`, sorted.

    The search is case-insensitive over question, answer, category and tags.
    Sorting is stable, so ties keep their input order.
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(
            f"Invalid sort field '{sort_by}'. Allowed: {', '.join(SORT_FIELDS)}."
        )
    if order not in SORT_ORDERS:
        raise ValueError(f"Invalid sort order '{order}'. Use asc or desc.")

    filtered = list(cards)
    if category:
        filtered = [c for c in filtered if c.category == category]

    needle = query.strip().lower()
    if needle:
        filtered = [c for c in filtered if _matches(c, needle)]

    return sorted(filtered, key=_sort_key(sort_by), reverse=order == "desc")


def shuffled(
    cards: Sequence[Flashcard], rng: Optional[random.Random] = None
) -> List[Flashcard]:
    """A shuffled copy of `cards`, for callers that want a random study order."""
    result = list(cards)
    (rng or random).shuffle(result)
    return result
