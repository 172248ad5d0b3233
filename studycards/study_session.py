"""
In-memory study session state for studycards.

A StudySession owns one run through a fixed, ordered deck of flashcards:
the cursor position, whether the current answer is revealed, and the running
correct/incorrect tallies. Progress, accuracy and completion are derived from
that state on every read.

Each instance is independent. Views that need the session receive it by
reference; nothing here is process-global.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from .models import Flashcard

logger = logging.getLogger(__name__)

DEFAULT_SESSION_LABEL = "Quick Study"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Read-only view of a study session for rendering.
    """

    label: Optional[str]
    total_cards: int
    current_index: int
    current_card: Optional[Flashcard]
    answer_revealed: bool
    correct_count: int
    incorrect_count: int
    graded_count: int
    progress_percent: float
    accuracy_percent: float
    is_active: bool
    is_complete: bool
    started_at: Optional[datetime]
    ended_at: Optional[datetime]


SessionListener = Callable[[SessionSnapshot], None]


class StudySession:
    """
    State machine for a single study session.

    Navigation is clamped to the deck bounds and grading only increments
    counters, so every command is total over the current state. Commands
    issued before `start()`, or after starting with an empty deck, leave the
    session untouched.

    A card may be graded more than once: `mark_correct()` and
    `mark_incorrect()` do not check whether the current card was already
    graded. Callers that want one grade per card compose
    grade -> hide -> advance themselves.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utcnow
        self._listeners: List[SessionListener] = []
        self._label: Optional[str] = None
        self._cards: Tuple[Flashcard, ...] = ()
        self._current_index = 0
        self._answer_revealed = False
        self._correct_count = 0
        self._incorrect_count = 0
        self._started_at: Optional[datetime] = None
        self._ended_at: Optional[datetime] = None

    # --- Raw state ---

    @property
    def label(self) -> Optional[str]:
        return self._label

    @property
    def cards(self) -> Tuple[Flashcard, ...]:
        return self._cards

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def answer_revealed(self) -> bool:
        return self._answer_revealed

    @property
    def correct_count(self) -> int:
        return self._correct_count

    @property
    def incorrect_count(self) -> int:
        return self._incorrect_count

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    @property
    def ended_at(self) -> Optional[datetime]:
        return self._ended_at

    # --- Derived state ---

    @property
    def is_active(self) -> bool:
        """True once started with at least one card, until reset."""
        return bool(self._cards)

    @property
    def current_card(self) -> Optional[Flashcard]:
        if not self._cards:
            return None
        return self._cards[self._current_index]

    @property
    def graded_count(self) -> int:
        return self._correct_count + self._incorrect_count

    @property
    def progress_percent(self) -> float:
        """
        How far the cursor has moved through the deck.

        Reaches 100 when positioned on the last card, before it is graded.
        """
        if not self._cards:
            return 0.0
        return (self._current_index + 1) / len(self._cards) * 100

    @property
    def accuracy_percent(self) -> float:
        total = self.graded_count
        if total == 0:
            return 0.0
        return self._correct_count / total * 100

    @property
    def is_complete(self) -> bool:
        """
        True when the cursor is on the last card and as many grades as cards
        have been recorded. Either condition alone is not completion.
        """
        if not self._cards:
            return False
        on_last_card = self._current_index == len(self._cards) - 1
        return on_last_card and self.graded_count >= len(self._cards)

    @property
    def is_ended(self) -> bool:
        return self._ended_at is not None

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """
        Whole seconds since the session started.

        Measured up to `ended_at` once the session has ended, otherwise up to
        `now` (defaults to the session clock). Returns 0 before start.
        """
        if self._started_at is None:
            return 0
        until = self._ended_at or now or self._clock()
        return max(0, int((until - self._started_at).total_seconds()))

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            label=self._label,
            total_cards=len(self._cards),
            current_index=self._current_index,
            current_card=self.current_card,
            answer_revealed=self._answer_revealed,
            correct_count=self._correct_count,
            incorrect_count=self._incorrect_count,
            graded_count=self.graded_count,
            progress_percent=self.progress_percent,
            accuracy_percent=self.accuracy_percent,
            is_active=self.is_active,
            is_complete=self.is_complete,
            started_at=self._started_at,
            ended_at=self._ended_at,
        )

    # --- Change notification ---

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with a fresh snapshot after every command
        that changed the session. Returns a callable that unsubscribes it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # --- Lifecycle commands ---

    def start(
        self,
        cards: Sequence[Flashcard],
        label: str = DEFAULT_SESSION_LABEL,
    ) -> None:
        """
        Begin a new session over `cards`, discarding any previous state.

        The deck is snapshotted in the order given; shuffle beforehand if a
        random order is wanted. An empty deck is accepted but leaves the
        session inactive.
        """
        self._label = label
        self._cards = tuple(cards)
        self._current_index = 0
        self._answer_revealed = False
        self._correct_count = 0
        self._incorrect_count = 0
        self._started_at = self._clock()
        self._ended_at = None
        logger.info(
            f"Started study session '{label}' with {len(self._cards)} cards."
        )
        if not self._cards:
            logger.warning(
                f"Study session '{label}' started with an empty deck."
            )
        self._notify()

    def end(self) -> None:
        """
        Stamp `ended_at`. Cards, counters and position stay readable for a
        summary. Calling again moves `ended_at` forward; calling before any
        `start()` does nothing.
        """
        if self._started_at is None:
            logger.debug("end() called before start(); ignoring.")
            return
        self._ended_at = self._clock()
        logger.info(
            f"Ended study session '{self._label}': "
            f"{self._correct_count} correct, "
            f"{self._incorrect_count} incorrect."
        )
        self._notify()

    def reset(self) -> None:
        """Return every field to its inactive default."""
        self._label = None
        self._cards = ()
        self._current_index = 0
        self._answer_revealed = False
        self._correct_count = 0
        self._incorrect_count = 0
        self._started_at = None
        self._ended_at = None
        logger.debug("Study session reset.")
        self._notify()

    # --- Reveal commands ---

    def show_answer(self) -> None:
        self._set_answer_revealed(True)

    def hide_answer(self) -> None:
        self._set_answer_revealed(False)

    def _set_answer_revealed(self, revealed: bool) -> None:
        if not self.is_active or self._answer_revealed == revealed:
            return
        self._answer_revealed = revealed
        self._notify()

    # --- Navigation commands ---

    def next_card(self) -> None:
        """Advance one card, clamped at the last card. Always hides the answer."""
        if not self.is_active:
            return
        self._move_to(min(self._current_index + 1, len(self._cards) - 1))

    def previous_card(self) -> None:
        """Go back one card, clamped at the first card. Always hides the answer."""
        if not self.is_active:
            return
        self._move_to(max(self._current_index - 1, 0))

    def _move_to(self, index: int) -> None:
        changed = index != self._current_index or self._answer_revealed
        self._current_index = index
        self._answer_revealed = False
        if changed:
            self._notify()

    # --- Grading commands ---

    def mark_correct(self) -> None:
        if not self.is_active:
            return
        self._correct_count += 1
        logger.debug(f"Card {self._current_index} graded correct.")
        self._notify()

    def mark_incorrect(self) -> None:
        if not self.is_active:
            return
        self._incorrect_count += 1
        logger.debug(f"Card {self._current_index} graded incorrect.")
        self._notify()
