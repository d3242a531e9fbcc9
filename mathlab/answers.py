"""
Answer Equivalence
==================
Canonicalization and correctness checks for user attempts.

``is_correct`` is the only place where an attempt is compared against a
reference answer. Scoring, outcome coloring and answer reveal all go
through it.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import QuestionRecord

# Everything outside the MCQ label alphabet, digits and the decimal point
_NON_ANSWER_CHARS = re.compile(r"[^A-D0-9.]")


def normalize(raw: Optional[str]) -> str:
    """
    Canonicalize an answer string.

    Upper-cases, drops every character outside ``A-D``, ``0-9`` and ``.``,
    then sorts what is left, so ``"b,a"`` and ``"AB"`` compare equal.
    """
    if not raw:
        return ""
    kept = _NON_ANSWER_CHARS.sub("", str(raw).upper())
    return "".join(sorted(kept))


def is_correct(question: Optional[QuestionRecord], attempt: Optional[str]) -> bool:
    """
    Decide whether ``attempt`` answers ``question``.

    Multiple choice compares the normalized label sets for exact equality.
    Short answers compare trimmed, case-folded text. A missing question or
    attempt is never correct.
    """
    if question is None or attempt is None:
        return False

    if question.is_multiple_choice:
        return normalize(attempt) == normalize(question.reference_answer)

    return (
        str(attempt).strip().casefold()
        == str(question.reference_answer).strip().casefold()
    )
