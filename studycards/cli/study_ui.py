"""
Command-line interface for running a study session.
"""

import logging
import time
from typing import Callable, Set

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from studycards.db.database import FlashcardDatabase
from studycards.exceptions import DatabaseError
from studycards.models import StudySessionRecord
from studycards.study_session import StudySession

logger = logging.getLogger(__name__)
console = Console()

HIDDEN_PROMPT = (
    r"[bold]\[Enter] show answer  \[n] next  \[p] previous  \[q] quit: [/bold]"
)
REVEALED_PROMPT = (
    r"[bold]\[c] correct  \[i] incorrect  \[h] hide  "
    r"\[n] next  \[p] previous  \[q] quit: [/bold]"
)


def format_elapsed(seconds: int) -> str:
    """Format a duration as M:SS, or H:MM:SS from one hour."""
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _display_current_card(session: StudySession) -> None:
    card = session.current_card
    console.rule(
        f"[bold]Card {session.current_index + 1} of {len(session.cards)}"
        f"  ({session.progress_percent:.0f}%)[/bold]"
    )
    console.print(
        Panel(
            Text(card.question),
            title=f"{escape(card.category)} · {card.difficulty.value}",
            border_style="green",
        )
    )
    if session.answer_revealed:
        console.print(
            Panel(Text(card.answer), title="Answer", border_style="blue")
        )


def _record_grade(
    session: StudySession,
    db: FlashcardDatabase,
    correct: bool,
    reveal_delay: float,
    sleep: Callable[[float], None],
) -> None:
    """Grade the current card, persist the outcome, then hide and advance."""
    card = session.current_card
    if correct:
        session.mark_correct()
    else:
        session.mark_incorrect()

    try:
        db.update_flashcard_review(card.id, success=correct)
    except DatabaseError as e:
        logger.error(f"Failed to save review for flashcard {card.id}: {e}")
        console.print(
            "[bold red]Could not save this review. "
            "The session score still counts it.[/bold red]"
        )

    session.hide_answer()
    if reveal_delay > 0:
        sleep(reveal_delay)
    session.next_card()


def display_session_summary(session: StudySession) -> None:
    """Print the outcome of a finished or abandoned session."""
    summary = Table(
        title=f"Session: {escape(session.label or '')}", show_header=False
    )
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", style="magenta")
    summary.add_row("Cards", str(len(session.cards)))
    summary.add_row("Correct", str(session.correct_count))
    summary.add_row("Incorrect", str(session.incorrect_count))
    summary.add_row("Accuracy", f"{session.accuracy_percent:.0f}%")
    summary.add_row("Time", format_elapsed(session.elapsed_seconds()))
    console.print(summary)


def start_study_flow(
    session: StudySession,
    db: FlashcardDatabase,
    record: StudySessionRecord,
    reveal_delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Drive a started StudySession from console input until it is complete or
    the user quits, then store the session's progress.

    Each card is graded at most once per run, so skipping ahead with `n`
    and grading the last card repeatedly cannot inflate its stored review
    count. Skipped cards are reached again with `p`.

    Args:
        session: A session already started with a non-empty deck.
        db: Database used to persist each grade and the session summary.
        record: The stored study session to update at the end.
        reveal_delay: Pause in seconds between hiding a graded answer and
            showing the next card.
        sleep: Sleep function, replaceable in tests.
    """
    if not session.is_active:
        console.print("[bold yellow]No cards to study.[/bold yellow]")
        return

    graded_ids: Set[str] = set()

    console.print(
        f"[bold cyan]Studying '{escape(session.label or '')}' "
        f"({len(session.cards)} cards)...[/bold cyan]"
    )

    while not session.is_complete:
        _display_current_card(session)
        prompt = REVEALED_PROMPT if session.answer_revealed else HIDDEN_PROMPT
        command = console.input(prompt).strip().lower()

        if command in ("", "s"):
            session.show_answer()
        elif command == "h":
            session.hide_answer()
        elif command == "n":
            session.next_card()
        elif command == "p":
            session.previous_card()
        elif command in ("c", "i"):
            if not session.answer_revealed:
                console.print(
                    "[yellow]Reveal the answer before grading.[/yellow]"
                )
                continue
            if session.current_card.id in graded_ids:
                console.print(
                    "[yellow]This card is already graded. "
                    "Use n or p to reach an ungraded card.[/yellow]"
                )
                continue
            graded_ids.add(session.current_card.id)
            _record_grade(session, db, command == "c", reveal_delay, sleep)
        elif command == "q":
            console.print("[bold cyan]Session stopped.[/bold cyan]")
            break
        else:
            console.print(
                f"[bold red]Unknown command '{escape(command)}'.[/bold red]"
            )

    if session.is_complete:
        console.print("[bold green]Session complete. Well done![/bold green]")

    session.end()
    try:
        db.update_study_session(
            record.id,
            completed_cards=session.graded_count,
            accuracy_rate=session.accuracy_percent,
        )
    except DatabaseError as e:
        logger.error(f"Failed to save study session {record.id}: {e}")
        console.print("[bold red]Could not save session progress.[/bold red]")

    display_session_summary(session)
