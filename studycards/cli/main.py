"""
CLI entry point for studycards.
"""

# Standard library imports
import shutil
from pathlib import Path
from typing import List, Optional

# Third-party imports
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Local application imports
from studycards.cli._generate_logic import (
    display_flashcards,
    generate_logic,
    improve_logic,
)
from studycards.cli._study_logic import study_logic
from studycards.config import Settings, get_settings
from studycards.db.database import FlashcardDatabase
from studycards.db.db_utils import backup_database, find_latest_backup
from studycards.exceptions import (
    CardNotFoundError,
    DatabaseError,
    DocumentExtractionError,
    GenerationError,
)
from studycards.generator import DIFFICULTY_CHOICES
from studycards.library import SORT_FIELDS, filter_flashcards
from studycards.study_session import DEFAULT_SESSION_LABEL


console = Console()

app = typer.Typer(
    name="studycards",
    help="Studycards: generate flashcards from notes and study them.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Helpers for resolving settings and the --db path
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path], settings: Settings) -> Path:
    """Resolve db path from the CLI flag, falling back to configuration."""
    return db if db is not None else settings.db_path


def _resolve_user(user: Optional[str], settings: Settings) -> str:
    return user or settings.user_id


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to STUDYCARDS_DB or STUDYCARDS_DB_PATH.",
    envvar="STUDYCARDS_DB",
)

_user_option = typer.Option(  # noqa: B008
    None,
    "--user",
    help="User id to act as. Falls back to STUDYCARDS_USER_ID.",
)


def _fail(message: str, error: Exception) -> None:
    console.print(f"[bold red]{message}:[/bold red] {escape(str(error))}")
    raise typer.Exit(code=1) from error


# ---------------------------------------------------------------------------
# Generate
# ---------------------------------------------------------------------------


@app.command()
def generate(
    files: List[Path] = typer.Argument(  # noqa: B008
        ...,
        exists=True,
        dir_okay=False,
        help="Study documents (.txt, .md, .docx, .pdf).",
    ),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Number of flashcards to generate."
    ),
    difficulty: str = typer.Option(
        "mixed",
        "--difficulty",
        help=f"One of: {', '.join(DIFFICULTY_CHOICES)}.",
    ),
    categories: Optional[List[str]] = typer.Option(  # noqa: B008
        None, "--category", "-c", help="Category to focus on (repeatable)."
    ),
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
):
    """Generate flashcards from study documents and store them."""
    settings = get_settings()
    if difficulty not in DIFFICULTY_CHOICES:
        console.print(
            f"[bold red]Error: --difficulty must be one of "
            f"{', '.join(DIFFICULTY_CHOICES)}.[/bold red]"
        )
        raise typer.Exit(code=1)

    try:
        generate_logic(
            files=files,
            db_path=_resolve_db_path(db, settings),
            user_id=_resolve_user(user, settings),
            settings=settings,
            count=count or settings.default_card_count,
            difficulty=difficulty,
            categories=categories or (),
        )
    except DocumentExtractionError as e:
        _fail("Could not read document", e)
    except GenerationError as e:
        _fail("Flashcard generation failed", e)
    except DatabaseError as e:
        _fail("Database Error", e)


# ---------------------------------------------------------------------------
# List & stats
# ---------------------------------------------------------------------------


@app.command("list")
def list_cards(
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Only show this category."
    ),
    search: str = typer.Option(
        "", "--search", "-s", help="Case-insensitive text search."
    ),
    sort_by: str = typer.Option(
        "created_at", "--sort-by", help=f"One of: {', '.join(SORT_FIELDS)}."
    ),
    order: str = typer.Option("desc", "--order", help="asc or desc."),
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
):
    """List stored flashcards."""
    settings = get_settings()
    try:
        with FlashcardDatabase(db_path=_resolve_db_path(db, settings)) as db_inst:
            cards = db_inst.get_flashcards(_resolve_user(user, settings))
        cards = filter_flashcards(
            cards, category=category, query=search, sort_by=sort_by, order=order
        )
    except ValueError as e:
        _fail("Invalid option", e)
    except DatabaseError as e:
        _fail("Database Error", e)

    if not cards:
        console.print("[yellow]No flashcards found.[/yellow]")
        return
    display_flashcards(cards, title=f"Flashcards ({len(cards)})")


def _display_overall_stats(cons: Console, stats_data: dict):
    table = Table(title="Flashcard Stats", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Total Cards", str(stats_data["total"]))
    table.add_row("Easy", str(stats_data["easy"]))
    table.add_row("Medium", str(stats_data["medium"]))
    table.add_row("Hard", str(stats_data["hard"]))
    table.add_row("Total Reviews", str(stats_data["total_reviews"]))
    table.add_row("Success Rate", f"{stats_data['success_rate']:.1f}%")
    cons.print(table)


@app.command()
def stats(
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
):
    """Display statistics about the user's flashcards."""
    settings = get_settings()
    user_id = _resolve_user(user, settings)
    try:
        with FlashcardDatabase(db_path=_resolve_db_path(db, settings)) as db_inst:
            stats_data = db_inst.get_flashcard_stats(user_id)
            categories = db_inst.get_categories(user_id)
    except DatabaseError as e:
        _fail("A database error occurred", e)

    _display_overall_stats(console, stats_data)
    if not stats_data["total"]:
        console.print("[yellow]No flashcards found in the database.[/yellow]")
        return
    console.print(f"Categories: [cyan]{escape(', '.join(categories))}[/cyan]")


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Study only this category."
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", min=1, help="Maximum number of cards."
    ),
    shuffle: bool = typer.Option(
        False, "--shuffle", help="Shuffle the deck before starting."
    ),
    name: str = typer.Option(
        DEFAULT_SESSION_LABEL, "--name", help="Name for this study session."
    ),
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
):
    """
    Start an interactive study session.

    Enter reveals the answer, c/i grade it and move on, n/p navigate and q
    quits. Each card can be graded once per session; cards skipped with n
    are reached again with p.
    """
    settings = get_settings()
    db_path = _resolve_db_path(db, settings)
    try:
        backup_path = backup_database(db_path)
        if backup_path.exists() and "backups" in str(backup_path):
            console.print(f"Database backed up to: [dim]{backup_path}[/dim]")

        study_logic(
            db_path=db_path,
            user_id=_resolve_user(user, settings),
            name=name,
            category=category,
            limit=limit,
            shuffle=shuffle,
            reveal_delay=settings.reveal_delay_seconds,
        )
    except DatabaseError as e:
        _fail("A database error occurred", e)


@app.command()
def sessions(
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
):
    """List past study sessions."""
    settings = get_settings()
    try:
        with FlashcardDatabase(db_path=_resolve_db_path(db, settings)) as db_inst:
            records = db_inst.get_study_sessions(_resolve_user(user, settings))
    except DatabaseError as e:
        _fail("A database error occurred", e)

    if not records:
        console.print("[yellow]No study sessions yet.[/yellow]")
        return

    table = Table(title="Study Sessions")
    table.add_column("Name", style="cyan")
    table.add_column("Created", style="dim")
    table.add_column("Completed", style="magenta")
    table.add_column("Accuracy", style="green")
    for record in records:
        table.add_row(
            escape(record.name),
            record.created_at.strftime("%Y-%m-%d %H:%M"),
            f"{record.completed_cards}/{record.total_cards}",
            f"{record.accuracy_rate:.0f}%",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Delete, improve and restore
# ---------------------------------------------------------------------------


@app.command()
def delete(
    card_id: str = typer.Argument(..., help="Id of the flashcard to delete."),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
    db: Optional[Path] = _db_option,
):
    """Delete a flashcard."""
    settings = get_settings()
    if not yes and not typer.confirm(f"Delete flashcard {card_id}?"):
        console.print("Delete cancelled.")
        raise typer.Exit()

    try:
        with FlashcardDatabase(db_path=_resolve_db_path(db, settings)) as db_inst:
            deleted = db_inst.delete_flashcard(card_id)
    except DatabaseError as e:
        _fail("A database error occurred", e)

    if not deleted:
        console.print(f"[bold red]Flashcard {card_id} not found.[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Deleted flashcard {card_id}.[/green]")


@app.command()
def improve(
    card_id: str = typer.Argument(..., help="Id of the flashcard to improve."),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Save the suggestion without asking."
    ),
    db: Optional[Path] = _db_option,
):
    """Ask the model to rewrite a flashcard more clearly."""
    settings = get_settings()

    def confirm() -> bool:
        return yes or typer.confirm("Save the improved flashcard?")

    try:
        updated = improve_logic(
            card_id=card_id,
            db_path=_resolve_db_path(db, settings),
            settings=settings,
            confirm=confirm,
        )
    except CardNotFoundError:
        console.print(f"[bold red]Flashcard {card_id} not found.[/bold red]")
        raise typer.Exit(code=1)
    except GenerationError as e:
        _fail("Flashcard improvement failed", e)
    except DatabaseError as e:
        _fail("A database error occurred", e)

    if updated is not None:
        console.print(f"[green]Updated flashcard {card_id}.[/green]")


@app.command()
def restore(
    db: Optional[Path] = _db_option,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
):
    """Restores the database from the most recent backup."""
    db_path = _resolve_db_path(db, get_settings())
    console.print(
        "[bold yellow]Attempting to restore database "
        "from backup...[/bold yellow]"
    )

    latest_backup = find_latest_backup(db_path)
    if not latest_backup:
        console.print("[bold red]Error: No backup files found.[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"Found latest backup: [cyan]{latest_backup.name}[/cyan]")

    if not yes:
        confirmed = typer.confirm(
            "Are you sure you want to overwrite the current "
            "database with this backup?"
        )
        if not confirmed:
            console.print("Restore operation cancelled.")
            raise typer.Exit()

    try:
        shutil.copy2(latest_backup, db_path)
    except OSError as e:
        _fail("An unexpected error occurred during restore", e)
    console.print(
        "[bold green]Database successfully restored "
        f"from {latest_backup.name}[/bold green]"
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application, exiting with status 1 on an unexpected error.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
