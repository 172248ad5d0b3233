from pathlib import Path
from typing import Optional

from rich.console import Console

from studycards.cli.study_ui import start_study_flow
from studycards.db.database import FlashcardDatabase
from studycards.library import shuffled
from studycards.study_session import StudySession

console = Console()


def study_logic(
    db_path: Path,
    user_id: str,
    name: str,
    category: Optional[str] = None,
    limit: Optional[int] = None,
    shuffle: bool = False,
    reveal_delay: float = 0.0,
) -> None:
    """
    Load a user's flashcards, store a new study session over them, and run
    the interactive study flow.

    Parameters:
        db_path (Path): Path to the flashcard database file.
        user_id (str): User whose flashcards are studied.
        name (str): Label for the session.
        category (Optional[str]): Restrict the deck to one category.
        limit (Optional[int]): Maximum number of cards in the deck.
        shuffle (bool): Shuffle the deck before starting.
        reveal_delay (float): Pause between grading and the next card.
    """
    with FlashcardDatabase(db_path=db_path) as db:
        if category:
            cards = db.get_flashcards_by_category(category, user_id)
        else:
            cards = db.get_flashcards(user_id)

        if shuffle:
            cards = shuffled(cards)
        if limit:
            cards = cards[:limit]

        if not cards:
            console.print(
                "[bold yellow]No flashcards found to study.[/bold yellow]"
            )
            return

        record = db.create_study_session(
            name, [card.id for card in cards], user_id
        )
        session = StudySession()
        session.start(cards, name)
        start_study_flow(session, db, record, reveal_delay=reveal_delay)
