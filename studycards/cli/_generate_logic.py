from pathlib import Path
from typing import Callable, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from studycards.config import Settings
from studycards.db.database import FlashcardDatabase
from studycards.document_parser import extract_text_from_files
from studycards.exceptions import CardNotFoundError
from studycards.generator import FlashcardGenerator
from studycards.models import Flashcard, FlashcardDraft

console = Console()


def display_flashcards(cards: Sequence[Flashcard], title: str) -> None:
    """Print flashcards as a table. Card text is shown verbatim, never as markup."""
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Question", style="cyan")
    table.add_column("Answer")
    table.add_column("Category", style="magenta")
    table.add_column("Difficulty", style="yellow")
    table.add_column("Tags", style="green")
    for card in cards:
        table.add_row(
            card.id,
            escape(card.question),
            escape(card.answer),
            escape(card.category),
            card.difficulty.value,
            escape(", ".join(card.tags)),
        )
    console.print(table)


def generate_logic(
    files: Sequence[Path],
    db_path: Path,
    user_id: str,
    settings: Settings,
    count: int,
    difficulty: str = "mixed",
    categories: Sequence[str] = (),
    generator: Optional[FlashcardGenerator] = None,
) -> List[Flashcard]:
    """
    Extract text from `files`, generate flashcards from it and store them.

    Returns:
        List[Flashcard]: The stored flashcards.

    Raises:
        DocumentExtractionError: If a file cannot be read.
        GenerationError: If the model call or its response fails.
        DatabaseError: If the cards cannot be stored.
    """
    text = extract_text_from_files(files)
    console.print(
        f"Extracted [cyan]{len(text)}[/cyan] characters "
        f"from {len(files)} file(s)."
    )

    generator = generator or FlashcardGenerator(settings=settings)
    with console.status("Generating flashcards..."):
        drafts = generator.generate_flashcards(
            text, count=count, difficulty=difficulty, categories=categories
        )

    with FlashcardDatabase(db_path=db_path) as db:
        saved = db.save_flashcards(drafts, user_id)

    display_flashcards(saved, title=f"Generated {len(saved)} flashcards")
    return saved


def _display_improvement(current: Flashcard, improved: FlashcardDraft) -> None:
    table = Table(title="Suggested improvement")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Current")
    table.add_column("Improved", style="green")
    table.add_row(
        "Question", escape(current.question), escape(improved.question)
    )
    table.add_row("Answer", escape(current.answer), escape(improved.answer))
    table.add_row(
        "Tags",
        escape(", ".join(current.tags)),
        escape(", ".join(improved.tags)),
    )
    console.print(table)


def improve_logic(
    card_id: str,
    db_path: Path,
    settings: Settings,
    confirm: Callable[[], bool] = lambda: True,
    generator: Optional[FlashcardGenerator] = None,
) -> Optional[Flashcard]:
    """
    Ask the model for a clearer version of a stored flashcard and, if
    `confirm()` agrees, save it over the original.

    Returns:
        The updated Flashcard, or None when the suggestion was discarded.

    Raises:
        CardNotFoundError: If no flashcard has this id.
        GenerationError: If the model call or its response fails.
        DatabaseError: If the card cannot be read or updated.
    """
    with FlashcardDatabase(db_path=db_path) as db:
        card = db.get_flashcard(card_id)
        if card is None:
            raise CardNotFoundError(f"Flashcard {card_id} not found.")

        generator = generator or FlashcardGenerator(settings=settings)
        draft = FlashcardDraft(
            **card.model_dump(include=set(FlashcardDraft.model_fields))
        )
        with console.status("Improving flashcard..."):
            improved = generator.improve_flashcard(draft)

        _display_improvement(card, improved)
        if not confirm():
            console.print("Improvement discarded.")
            return None
        return db.update_flashcard_content(card_id, improved)
