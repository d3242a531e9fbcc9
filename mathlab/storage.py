"""
Collection Storage
==================
JSON export/import of question collections.

File layout (UTF-8, 2-space indent), sorted by ``id``:

    [
      {
        "id": 1,
        "question": "What is $2 + 2$?",
        "answer": "4",
        "type": "short",
        "options": {"A": "", "B": "", "C": "", "D": ""},
        "difficulty": "",
        "categories": {"algebra": false, ...}
      }
    ]

Identities are never written; every import issues new ones. Records with
missing fields are completed with defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from .errors import ImportFormatError
from .models import QuestionRecord

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "math_lab.json"


def dumps_collection(questions: list[QuestionRecord]) -> str:
    ordered = sorted(questions, key=lambda q: q.id)
    data = [q.to_persisted() for q in ordered]
    return json.dumps(data, indent=2, ensure_ascii=False)


def loads_collection(text: str) -> list[QuestionRecord]:
    """
    Parse a collection document.

    Raises:
        ImportFormatError: If the text is not a JSON array of objects or a
            record holds values of the wrong type.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ImportFormatError(
            f"Expected a list of question records, got {type(data).__name__}"
        )

    questions: list[QuestionRecord] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise ImportFormatError(
                f"Record {idx} is {type(item).__name__}, expected an object"
            )
        try:
            questions.append(QuestionRecord.from_persisted(item))
        except ValidationError as e:
            raise ImportFormatError(f"Record {idx} is malformed: {e}") from e

    return questions


def save_collection(file_path: str | Path, questions: list[QuestionRecord]) -> Path:
    """Write the collection to disk, creating parent directories."""
    file_path = Path(file_path).resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(dumps_collection(questions) + "\n", encoding="utf-8")
    logger.info(f"Saved {len(questions)} questions: {file_path}")
    return file_path


def load_collection(file_path: str | Path) -> list[QuestionRecord]:
    """Read a collection file, regenerating identities."""
    file_path = Path(file_path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Could not read {file_path}: {e}") from e

    questions = loads_collection(text)
    logger.info(f"Loaded {len(questions)} questions: {file_path}")
    return questions
