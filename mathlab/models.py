"""
Data Models
===========
Pydantic models for question records, evaluation results and ingestion
output. Question records serialize to the flat JSON collection format used
by the editor (``question``/``answer``/``type``/``options``/``categories``
keys); the ephemeral ``identity`` is never written out.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
)

logger = logging.getLogger(__name__)


# ─── Enums ────────────────────────────────────────────────────────────────────


class ChoiceLabel(str, Enum):
    """Fixed label set for multiple-choice options."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class QuestionKind(str, Enum):
    """Supported question formats."""
    SHORT_ANSWER = "short"
    MULTIPLE_CHOICE = "mcq"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    INSANE = "insane"


class Category(str, Enum):
    """Fixed category vocabulary for tagging questions."""
    ALGEBRA = "algebra"
    NUMBER_THEORY = "number theory"
    MEASUREMENT = "measurement"
    GEOMETRY = "geometry"
    PROBABILITY = "probability"


class Phase(str, Enum):
    """Evaluation phase of a test-taking session."""
    UNCHECKED = "unchecked"
    FIRST_CHECKED = "first-checked"
    SECOND_CHECKED = "second-checked"


class QuestionOutcome(str, Enum):
    """Per-question result used for feedback coloring."""
    PENDING = "pending"
    CORRECT = "correct"
    PARTIAL = "partial"
    WRONG = "wrong"


class ViewMode(str, Enum):
    EDITOR = "editor"
    TEST = "test"


def new_identity() -> str:
    """Generate an opaque, collection-unique record identity."""
    return uuid.uuid4().hex


def default_tags() -> dict[Category, bool]:
    return {category: False for category in Category}


# ─── Question Models ──────────────────────────────────────────────────────────


class Choices(BaseModel):
    """Option texts keyed by the fixed A-D label set."""
    A: str = ""
    B: str = ""
    C: str = ""
    D: str = ""

    @field_validator("A", "B", "C", "D", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def text_for(self, label: ChoiceLabel) -> str:
        return getattr(self, ChoiceLabel(label).value)

    def items(self) -> list[tuple[ChoiceLabel, str]]:
        return [(label, self.text_for(label)) for label in ChoiceLabel]

    @property
    def is_empty(self) -> bool:
        return not any(text.strip() for _, text in self.items())


class QuestionRecord(BaseModel):
    """
    A single test item.

    ``id`` is a user-facing ordinal used for display and sorting only; it is
    not unique. ``identity`` is the stable lookup key for attempts and is
    regenerated whenever a record is created or re-imported.
    """
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    identity: str = Field(default_factory=new_identity, exclude=True)
    id: int = 1
    body: str = Field(default="", alias="question")
    reference_answer: str = Field(default="", alias="answer")
    kind: QuestionKind = Field(default=QuestionKind.SHORT_ANSWER, alias="type")
    choices: Choices = Field(default_factory=Choices, alias="options")
    difficulty: Optional[Difficulty] = None
    tags: dict[Category, bool] = Field(
        default_factory=default_tags, alias="categories"
    )

    @field_validator("body", "reference_answer", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        # Hand-edited files often store numeric answers as JSON numbers
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("choices", mode="before")
    @classmethod
    def _coerce_choices(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("difficulty", mode="before")
    @classmethod
    def _blank_difficulty(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _complete_tags(cls, value: Any) -> Any:
        known = {category.value for category in Category}
        if value is None:
            return default_tags()
        if isinstance(value, (list, tuple, set, frozenset)):
            value = {getattr(item, "value", item): True for item in value}
        if not isinstance(value, dict):
            return value

        tags: dict[str, Any] = {category.value: False for category in Category}
        for key, flag in value.items():
            name = key.value if isinstance(key, Category) else key
            if name not in known:
                logger.warning(f"Dropping unknown category: {name!r}")
                continue
            tags[name] = flag
        return tags

    @field_serializer("difficulty")
    def _serialize_difficulty(self, difficulty: Optional[Difficulty]) -> str:
        return difficulty.value if difficulty else ""

    @field_serializer("tags")
    def _serialize_tags(self, tags: dict[Category, bool]) -> dict[str, bool]:
        return {category.value: bool(tags.get(category, False)) for category in Category}

    # ── Construction ──────────────────────────────────────────────────

    @classmethod
    def new(cls, id: int = 1, body: str = "") -> QuestionRecord:
        """Fresh short-answer record with a new identity and empty metadata."""
        return cls(id=id, body=body)

    @classmethod
    def from_persisted(cls, data: dict) -> QuestionRecord:
        """Hydrate a record from the collection file, always re-issuing identity."""
        payload = {
            key: value for key, value in data.items()
            if key not in ("identity", "uuid")
        }
        return cls.model_validate(payload)

    def to_persisted(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    # ── Convenience ───────────────────────────────────────────────────

    @property
    def is_multiple_choice(self) -> bool:
        return self.kind == QuestionKind.MULTIPLE_CHOICE

    @property
    def active_tags(self) -> set[Category]:
        return {category for category, on in self.tags.items() if on}

    def has_tag(self, category: Category) -> bool:
        return bool(self.tags.get(Category(category), False))


# ─── Evaluation Models ────────────────────────────────────────────────────────


class ScoreStats(BaseModel):
    """Aggregate score of a session."""
    correct: int = 0
    partial: int = 0
    wrong: int = 0
    total: int = 0


# ─── Ingestion Models ─────────────────────────────────────────────────────────


class Segment(BaseModel):
    """One numbered question body cut out of recognized text."""
    ordinal: int = Field(ge=0)
    body: str


class SourceDocument(BaseModel):
    """Metadata about the ingested PDF."""
    name: str = ""
    source_pdf: str = ""
    total_pages: int = 0
    pages_processed: int = 0
    file_hash: str = ""
    file_size_bytes: int = 0


class CollectionReport(BaseModel):
    """Quality report over a question collection."""
    total_questions: int = 0
    complete_questions: int = 0
    missing_ids: list[int] = Field(default_factory=list)
    duplicate_ids: list[int] = Field(default_factory=list)
    questions_missing_body: list[int] = Field(default_factory=list)
    questions_missing_answer: list[int] = Field(default_factory=list)
    mcq_missing_choices: list[int] = Field(default_factory=list)
    invalid_mcq_answers: list[int] = Field(default_factory=list)

    @computed_field
    @property
    def completion_rate(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return round(self.complete_questions / self.total_questions * 100, 2)


class IngestionResult(BaseModel):
    """Complete output of one ingestion run."""
    source: SourceDocument
    questions: list[QuestionRecord] = Field(default_factory=list)
    report: CollectionReport = Field(default_factory=CollectionReport)
    raw_text_length: int = 0
    engine_version: str = "1.0.0"
    ingested_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
