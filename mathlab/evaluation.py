"""
Evaluation Session
==================
Two-attempt grading state machine for a test-taking session.

Phases:
    UNCHECKED      → first attempts editable, timer running
    FIRST_CHECKED  → first attempts frozen; if every answer is correct the
                     session is *perfect* and the timer stops, otherwise
                     wrong questions get a second attempt
    SECOND_CHECKED → everything frozen, timer stopped

Reset is only legal from SECOND_CHECKED or a perfect run and always asks
for confirmation first. Out-of-order actions are ignored, never raised.
"""

from __future__ import annotations

import functools
import logging
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Union

from .answers import is_correct
from .errors import InvalidTransition
from .models import (
    ChoiceLabel,
    Phase,
    QuestionOutcome,
    QuestionRecord,
    ScoreStats,
    ViewMode,
)
from .timer import SessionTimer

logger = logging.getLogger(__name__)

Confirmation = Union[bool, Callable[[], bool]]


def timer_should_run(mode: ViewMode, phase: Phase, perfect: bool) -> bool:
    """The timer runs only while a test is being taken and not yet finished."""
    return (
        mode == ViewMode.TEST
        and phase != Phase.SECOND_CHECKED
        and not perfect
    )


def _ignore_invalid(method):
    """Turn an InvalidTransition raised by ``method`` into a False return."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except InvalidTransition as e:
            logger.debug(f"Ignored {method.__name__} in {self.phase.value}: {e}")
            return False
    return wrapper


def _confirmed(confirm: Confirmation) -> bool:
    return bool(confirm() if callable(confirm) else confirm)


class EvaluationSession:
    """
    Attempt storage, phase and scoring for one run through a collection.

    Attempts are keyed by question identity. The session only grades
    through ``answers.is_correct``.
    """

    def __init__(
        self,
        questions: Iterable[QuestionRecord],
        timer: Optional[SessionTimer] = None,
    ):
        self._questions: list[QuestionRecord] = list(questions)
        self._by_identity = {q.identity: q for q in self._questions}
        self._first: dict[str, str] = {}
        self._second: dict[str, str] = {}
        self._phase = Phase.UNCHECKED
        self._active = False
        self.timer = timer or SessionTimer()

    # ── State ─────────────────────────────────────────────────────────

    @property
    def questions(self) -> list[QuestionRecord]:
        return list(self._questions)

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def mode(self) -> ViewMode:
        return ViewMode.TEST if self._active else ViewMode.EDITOR

    @property
    def first_attempts(self) -> Mapping[str, str]:
        return MappingProxyType(self._first)

    @property
    def second_attempts(self) -> Mapping[str, str]:
        return MappingProxyType(self._second)

    @property
    def elapsed_seconds(self) -> int:
        return self.timer.elapsed_seconds

    @property
    def has_errors(self) -> bool:
        return any(not self.first_correct(q.identity) for q in self._questions)

    @property
    def is_perfect(self) -> bool:
        return self._phase == Phase.FIRST_CHECKED and not self.has_errors

    @property
    def is_terminal(self) -> bool:
        return self._phase == Phase.SECOND_CHECKED or self.is_perfect

    # ── Grading ───────────────────────────────────────────────────────

    def question(self, identity: str) -> Optional[QuestionRecord]:
        return self._by_identity.get(identity)

    def is_correct(self, identity: str, attempt: Optional[str]) -> bool:
        return is_correct(self._by_identity.get(identity), attempt)

    def first_correct(self, identity: str) -> bool:
        return self.is_correct(identity, self._first.get(identity))

    def second_correct(self, identity: str) -> bool:
        return self.is_correct(identity, self._second.get(identity))

    def score_stats(self) -> ScoreStats:
        """
        Aggregate score. All zero until the first check; partial and wrong
        are only counted once the session is fully checked.
        """
        if self._phase == Phase.UNCHECKED:
            return ScoreStats()

        stats = ScoreStats(total=len(self._questions))
        fully_checked = self.is_terminal
        for q in self._questions:
            if self.first_correct(q.identity):
                stats.correct += 1
            elif fully_checked:
                if self.second_correct(q.identity):
                    stats.partial += 1
                else:
                    stats.wrong += 1
        return stats

    def outcome(self, identity: str) -> QuestionOutcome:
        if identity not in self._by_identity or self._phase == Phase.UNCHECKED:
            return QuestionOutcome.PENDING
        if self.first_correct(identity):
            return QuestionOutcome.CORRECT
        if not self.is_terminal:
            return QuestionOutcome.PENDING
        if self.second_correct(identity):
            return QuestionOutcome.PARTIAL
        return QuestionOutcome.WRONG

    def needs_second_attempt(self, identity: str) -> bool:
        """True when the question shows a second-attempt field."""
        return (
            identity in self._by_identity
            and self._phase != Phase.UNCHECKED
            and not self.is_perfect
            and not self.first_correct(identity)
        )

    def can_edit(self, identity: str, second: bool = False) -> bool:
        if identity not in self._by_identity:
            return False
        if not second:
            return self._phase == Phase.UNCHECKED
        return (
            self._phase == Phase.FIRST_CHECKED
            and self.needs_second_attempt(identity)
        )

    def can_reveal_answer(self, identity: str) -> bool:
        return (
            self._phase == Phase.SECOND_CHECKED
            and identity in self._by_identity
            and not self.first_correct(identity)
            and not self.second_correct(identity)
        )

    def revealed_answer(self, identity: str) -> Optional[str]:
        if not self.can_reveal_answer(identity):
            return None
        return self._by_identity[identity].reference_answer

    # ── Attempts ──────────────────────────────────────────────────────

    @_ignore_invalid
    def update_attempt(
        self, identity: str, answer: Optional[str], second: bool = False
    ) -> bool:
        self._require_editable(identity, second)
        target = self._second if second else self._first
        target[identity] = answer or ""
        return True

    @_ignore_invalid
    def toggle_choice(
        self, identity: str, label: ChoiceLabel, second: bool = False
    ) -> bool:
        """Select ``label`` if absent from the attempt, deselect it otherwise."""
        self._require_editable(identity, second)
        letter = ChoiceLabel(label).value
        target = self._second if second else self._first
        current = target.get(identity, "")
        if letter in current:
            target[identity] = current.replace(letter, "")
        else:
            target[identity] = current + letter
        return True

    # ── Transitions ───────────────────────────────────────────────────

    @_ignore_invalid
    def check_first(self) -> bool:
        self._require(
            self._phase == Phase.UNCHECKED, "first attempt already checked"
        )
        self._phase = Phase.FIRST_CHECKED
        stats = self.score_stats()
        logger.info(
            f"First attempt checked: {stats.correct}/{stats.total} correct"
            + (" (perfect run)" if self.is_perfect else "")
        )
        self._reconcile_timer()
        return True

    @_ignore_invalid
    def check_second(self) -> bool:
        self._require(
            self._phase == Phase.FIRST_CHECKED,
            "second attempt needs a checked first attempt",
        )
        self._require(not self.is_perfect, "perfect run has no second attempt")
        self._phase = Phase.SECOND_CHECKED
        stats = self.score_stats()
        logger.info(
            f"Second attempt checked: {stats.correct} correct, "
            f"{stats.partial} partial, {stats.wrong} wrong"
        )
        self._reconcile_timer()
        return True

    @_ignore_invalid
    def reset(self, confirm: Confirmation = True) -> bool:
        """Clear attempts and timer. Confirmation is asked before anything else."""
        if not _confirmed(confirm):
            logger.info("Reset cancelled")
            return False
        self._require(self.is_terminal, "test is not finished")

        self._first.clear()
        self._second.clear()
        self._phase = Phase.UNCHECKED
        self.timer.reset()
        logger.info("Session reset")
        self._reconcile_timer()
        return True

    def advance(self, confirm: Confirmation = True) -> bool:
        """Primary action: check first, then second, then reset."""
        if self.is_terminal:
            return self.reset(confirm)
        if self._phase == Phase.FIRST_CHECKED:
            return self.check_second()
        return self.check_first()

    # ── Timer ─────────────────────────────────────────────────────────

    def activate(self):
        """Enter test-taking mode."""
        self._active = True
        self._reconcile_timer()

    def deactivate(self):
        self._active = False
        self._reconcile_timer()

    def _reconcile_timer(self):
        if timer_should_run(self.mode, self._phase, self.is_perfect):
            self.timer.start()
        else:
            self.timer.stop()

    # ── Guards ────────────────────────────────────────────────────────

    def _require(self, condition: bool, message: str):
        if not condition:
            raise InvalidTransition(message)

    def _require_editable(self, identity: str, second: bool):
        self._require(identity in self._by_identity, f"unknown question {identity!r}")
        self._require(
            self.can_edit(identity, second),
            f"{'second' if second else 'first'} attempt is frozen",
        )
