"""
Math Markup
===========
Splits question and option text into literal and inline-math parts for
rendering.

Math is delimited by an unescaped ``$`` pair on a single line. Outside math
an escaped ``\\$`` renders as a plain dollar sign. A dangling ``$`` or an
empty ``$$`` pair stays literal.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel

# Non-empty, single-line span between two dollars not preceded by a backslash
MATH_SPAN_PATTERN = re.compile(r"(?<!\\)\$(.+?)(?<!\\)\$")

_ESCAPED_DOLLAR = re.compile(r"\\\$")


class PartKind(str, Enum):
    TEXT = "text"
    MATH = "math"


class MarkupPart(BaseModel):
    kind: PartKind
    content: str


def _literal(text: str) -> MarkupPart:
    return MarkupPart(kind=PartKind.TEXT, content=_ESCAPED_DOLLAR.sub("$", text))


def split_math(text: str) -> list[MarkupPart]:
    """
    Split ``text`` into alternating literal and math parts.

    >>> [p.content for p in split_math("Find $x$ if \\\\$5")]
    ['Find ', 'x', ' if $5']
    """
    if not text:
        return []

    parts: list[MarkupPart] = []
    cursor = 0
    for match in MATH_SPAN_PATTERN.finditer(text):
        if match.start() > cursor:
            parts.append(_literal(text[cursor:match.start()]))
        parts.append(MarkupPart(kind=PartKind.MATH, content=match.group(1)))
        cursor = match.end()

    if cursor < len(text):
        parts.append(_literal(text[cursor:]))

    return parts
