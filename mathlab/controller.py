"""
Lab Controller
==============
Single owner of the question collection, the editor/test mode, the
ingestion-in-flight flag and the current evaluation session.

Editing is only allowed in editor mode. Entering test mode starts a fresh
session; leaving it discards the session. Mode cannot change while a
document is being ingested.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from . import storage
from .engine import IngestionEngine
from .errors import EmptyExtraction, ModeError
from .evaluation import Confirmation, EvaluationSession
from .models import (
    Category,
    ChoiceLabel,
    Difficulty,
    IngestionResult,
    QuestionKind,
    QuestionRecord,
    ViewMode,
)
from .timer import SessionTimer

logger = logging.getLogger(__name__)

# Fields an editor may change directly
EDITABLE_FIELDS = {"id", "body", "reference_answer", "kind", "difficulty"}


class LabController:
    """Application state for one user working on one collection."""

    def __init__(
        self,
        engine: Optional[IngestionEngine] = None,
        timer_factory: Callable[[], SessionTimer] = SessionTimer,
    ):
        self._engine = engine
        self._timer_factory = timer_factory
        self.questions: list[QuestionRecord] = []
        self.mode = ViewMode.EDITOR
        self.session: Optional[EvaluationSession] = None
        self._ingesting = False

    @property
    def engine(self) -> IngestionEngine:
        if self._engine is None:
            self._engine = IngestionEngine()
        return self._engine

    @property
    def ingesting(self) -> bool:
        return self._ingesting

    # ── Collection I/O ────────────────────────────────────────────────

    def ingest_document(
        self,
        pdf_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> IngestionResult:
        """
        Replace the collection with questions recognized in ``pdf_path``.

        Raises:
            IngestionFailure: The document could not be processed; the
                collection is left untouched.
            EmptyExtraction: No questions were recognized; the collection
                is left untouched.
        """
        self._require_mode(ViewMode.EDITOR, "ingest a document")
        self._ingesting = True
        try:
            result = self.engine.ingest(pdf_path, progress_callback=progress_callback)
        finally:
            self._ingesting = False

        if not result.questions:
            raise EmptyExtraction(
                f"No questions recognized in {result.source.source_pdf}"
            )

        self.questions = list(result.questions)
        return result

    def import_file(self, file_path: str | Path) -> list[QuestionRecord]:
        self._require_mode(ViewMode.EDITOR, "import a collection")
        self.questions = storage.load_collection(file_path)
        return self.questions

    def export_file(self, file_path: str | Path) -> Path:
        return storage.save_collection(file_path, self.questions)

    # ── Editor ────────────────────────────────────────────────────────

    def find(self, identity: str) -> Optional[QuestionRecord]:
        return next((q for q in self.questions if q.identity == identity), None)

    def add_question(self, body: str = "") -> QuestionRecord:
        """Append a blank record numbered after the current collection size."""
        self._require_mode(ViewMode.EDITOR, "add questions")
        record = QuestionRecord.new(id=len(self.questions) + 1, body=body)
        self.questions.append(record)
        return record

    def remove_question(self, identity: str) -> bool:
        self._require_mode(ViewMode.EDITOR, "remove questions")
        before = len(self.questions)
        self.questions = [q for q in self.questions if q.identity != identity]
        return len(self.questions) < before

    def update_question(self, identity: str, **changes: Any) -> QuestionRecord:
        """
        Assign editable fields on a record; values are validated.

        Raises:
            KeyError: Unknown identity.
            ValueError: A field is not editable.
        """
        self._require_mode(ViewMode.EDITOR, "edit questions")
        record = self._get(identity)
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        for field, value in changes.items():
            setattr(record, field, value)
        return record

    def toggle_kind(self, identity: str) -> QuestionKind:
        record = self._get(identity)
        new_kind = (
            QuestionKind.SHORT_ANSWER
            if record.is_multiple_choice
            else QuestionKind.MULTIPLE_CHOICE
        )
        self.update_question(identity, kind=new_kind)
        return new_kind

    def set_choice(self, identity: str, label: ChoiceLabel, text: str) -> QuestionRecord:
        self._require_mode(ViewMode.EDITOR, "edit questions")
        record = self._get(identity)
        record.choices = record.choices.model_copy(
            update={ChoiceLabel(label).value: text}
        )
        return record

    def set_difficulty(
        self, identity: str, difficulty: Optional[Difficulty]
    ) -> QuestionRecord:
        return self.update_question(identity, difficulty=difficulty)

    def toggle_tag(self, identity: str, category: Category) -> bool:
        """Flip one category flag; returns the new state."""
        self._require_mode(ViewMode.EDITOR, "edit questions")
        record = self._get(identity)
        category = Category(category)
        tags = dict(record.tags)
        tags[category] = not tags.get(category, False)
        record.tags = tags
        return tags[category]

    def questions_tagged(self, category: Optional[Category] = None) -> list[QuestionRecord]:
        """Collection sorted by id, optionally restricted to one category."""
        selected = self.questions
        if category is not None:
            selected = [q for q in selected if q.has_tag(category)]
        return sorted(selected, key=lambda q: q.id)

    # ── Modes ─────────────────────────────────────────────────────────

    def enter_test_mode(self, category: Optional[Category] = None) -> EvaluationSession:
        if self.mode == ViewMode.TEST and self.session is not None:
            return self.session
        self._require_idle("start a test")

        self.mode = ViewMode.TEST
        self.session = EvaluationSession(
            self.questions_tagged(category), timer=self._timer_factory()
        )
        self.session.activate()
        logger.info(f"Test started with {len(self.session.questions)} questions")
        return self.session

    def enter_editor_mode(self):
        self._require_idle("return to the editor")
        if self.session is not None:
            self.session.deactivate()
            self.session = None
        self.mode = ViewMode.EDITOR

    def toggle_mode(self) -> ViewMode:
        if self.mode == ViewMode.EDITOR:
            self.enter_test_mode()
        else:
            self.enter_editor_mode()
        return self.mode

    def advance(self, confirm: Confirmation = True) -> bool:
        """Run the session's primary action (check first/second or reset)."""
        self._require_mode(ViewMode.TEST, "check answers")
        return self.session.advance(confirm)

    # ── Guards ────────────────────────────────────────────────────────

    def _get(self, identity: str) -> QuestionRecord:
        record = self.find(identity)
        if record is None:
            raise KeyError(identity)
        return record

    def _require_mode(self, mode: ViewMode, action: str):
        if self.mode != mode:
            raise ModeError(f"Cannot {action} in {self.mode.value} mode")

    def _require_idle(self, action: str):
        if self._ingesting:
            raise ModeError(f"Cannot {action} while a document is being ingested")
