"""
Text Recognizer
===============
Thin wrapper around Tesseract (pytesseract) turning a page image into text.
"""

from __future__ import annotations

import logging

import pytesseract
from PIL import Image

logger = logging.getLogger(__name__)


class TesseractRecognizer:
    """One ``recognize`` call per page image; returns the page's full text."""

    def __init__(self, language: str = "eng", config: str = ""):
        self.language = language
        self.config = config

    def recognize(self, image: Image.Image) -> str:
        text = pytesseract.image_to_string(
            image, lang=self.language, config=self.config
        )
        logger.debug(
            f"Recognized {len(text)} chars from {image.width}x{image.height} image"
        )
        return text or ""
