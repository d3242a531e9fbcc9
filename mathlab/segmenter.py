"""
Text Segmenter
==============
Splits the recognized text of a whole document into numbered question
bodies using line-start markers such as ``12.`` or ``3)``.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import Segment

logger = logging.getLogger(__name__)

# ─── Marker Patterns ──────────────────────────────────────────────────────────

# Matches "1. ", "12) ", "  7.\n" at the start of a line; never eats the line break
QUESTION_MARKER_PATTERN = re.compile(
    r"^[ \t]*(\d+)[.)](?:[ \t]+|(?=\r?\n)|$)", re.MULTILINE
)


class TextSegmenter:
    """
    Greedy left-to-right scanner over a flat text blob.

    Each marker opens a question whose body runs until the next marker or
    the end of the text. Segments come back in scan order; callers sort.
    """

    def __init__(self, marker_pattern: Optional[re.Pattern] = None):
        self.marker_pattern = marker_pattern or QUESTION_MARKER_PATTERN

    def segment(self, full_text: str) -> list[Segment]:
        """Cut ``full_text`` into ordered segments."""
        if not full_text:
            return []

        markers = list(self.marker_pattern.finditer(full_text))
        if not markers:
            logger.warning("No numbered question markers found in text")
            return []

        segments: list[Segment] = []
        for idx, match in enumerate(markers):
            end = (
                markers[idx + 1].start()
                if idx + 1 < len(markers)
                else len(full_text)
            )
            ordinal = int(match.group(1))
            body = full_text[match.end():end].strip()
            logger.debug(f"Detected question {ordinal} ({len(body)} chars)")
            segments.append(Segment(ordinal=ordinal, body=body))

        logger.info(f"Segmented {len(segments)} question bodies")
        return segments


def segment_text(full_text: str) -> list[Segment]:
    """Segment ``full_text`` with the default question marker."""
    return TextSegmenter().segment(full_text)
