"""
Page Rasterizer
===============
Renders PDF pages to Pillow images using PyMuPDF (fitz) so they can be fed
to the OCR engine.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image

logger = logging.getLogger(__name__)


class PageRasterizer:
    """
    Opens a PDF and yields its pages in reading order.

    Pages are rendered one at a time; the document stays open only while
    ``iter_pages`` is being consumed.
    """

    def page_count(self, pdf_path: str) -> int:
        """Number of pages in the PDF."""
        with fitz.open(pdf_path) as doc:
            return doc.page_count

    def iter_pages(
        self,
        pdf_path: str,
        page_range: Optional[tuple[int, int]] = None,
    ) -> Iterator[tuple[int, int, fitz.Page]]:
        """
        Yield ``(page_number, total_in_range, page)`` tuples.

        Args:
            pdf_path: Path to the PDF file.
            page_range: Optional (start, end) range (1-indexed, inclusive).
        """
        with fitz.open(pdf_path) as doc:
            total_pages = doc.page_count

            start_page = 1
            end_page = total_pages
            if page_range:
                start_page = max(1, page_range[0])
                end_page = min(total_pages, page_range[1])

            logger.info(
                f"Rasterizing {pdf_path} "
                f"(pages {start_page} to {end_page})"
            )

            in_range = max(0, end_page - start_page + 1)
            for page_idx in range(start_page - 1, end_page):
                yield page_idx + 1, in_range, doc[page_idx]

    def render(self, page: fitz.Page, scale: float) -> Image.Image:
        """Render ``page`` at ``scale``x zoom into an RGB image."""
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
