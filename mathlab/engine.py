"""
Ingestion Engine
================
Main orchestrator turning a scanned question paper into question records.

Usage:
    engine = IngestionEngine(config)
    result = engine.ingest("path/to/paper.pdf")
    # result.questions is sorted by id, each with a fresh identity

Architecture:
    PDF → PageRasterizer → page images → TesseractRecognizer → page text
        → (concatenated, no separator) → TextSegmenter → Segments
        → QuestionRecords → CollectionValidator → IngestionResult
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from . import __version__
from .errors import IngestionFailure
from .models import IngestionResult, QuestionRecord, SourceDocument
from .rasterizer import PageRasterizer
from .recognizer import TesseractRecognizer
from .segmenter import TextSegmenter
from .validator import CollectionValidator

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class IngestionConfig:
    """Configuration for the ingestion engine."""

    # Rasterization: fixed for a whole run
    render_scale: float = 2.0

    # OCR
    ocr_language: str = "eng"
    tesseract_config: str = ""

    # Processing
    page_range: Optional[tuple[int, int]] = None

    # Snapshot of the concatenated OCR text
    raw_text_dir: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Attach console (and optional file) handlers to the package logger."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("mathlab")
    package_logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    has_console = any(
        type(h) is logging.StreamHandler for h in package_logger.handlers
    )
    if not has_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        package_logger.addHandler(console)

    for handler in package_logger.handlers:
        handler.setLevel(log_level)

    if log_file:
        target = os.path.abspath(log_file)
        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in package_logger.handlers
        )
        if not already:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)


class IngestionEngine:
    """
    Document ingestion pipeline.

    Pages are rendered and recognized strictly one after another; the
    accumulated text order is what the segmenter relies on. Any failure
    aborts the whole run and no partial records are returned.
    """

    def __init__(
        self,
        config: Optional[IngestionConfig] = None,
        rasterizer: Optional[PageRasterizer] = None,
        recognizer: Optional[TesseractRecognizer] = None,
    ):
        self.config = config or IngestionConfig()
        self.rasterizer = rasterizer or PageRasterizer()
        self.recognizer = recognizer or TesseractRecognizer(
            language=self.config.ocr_language,
            config=self.config.tesseract_config,
        )
        self.segmenter = TextSegmenter()
        setup_logging(self.config.log_level, self.config.log_file)

    def ingest(
        self,
        pdf_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> IngestionResult:
        """
        Convert a PDF into question records.

        Args:
            pdf_path: Path to the PDF file.
            progress_callback: Callback(pages_done, total_pages) after each page.

        Returns:
            IngestionResult with records sorted by id. The record list is
            empty when no numbered questions were recognized.

        Raises:
            IngestionFailure: If the document cannot be opened, rendered
                or recognized.
        """
        pdf_path = os.path.abspath(pdf_path)

        if not os.path.exists(pdf_path):
            raise IngestionFailure(f"PDF not found: {pdf_path}")

        start_time = time.time()
        logger.info(f"Starting ingestion of: {pdf_path}")

        # ── Step 1: Source metadata ───────────────────────────────────
        source = self._build_source_metadata(pdf_path)

        # ── Step 2: Rasterize + recognize, page by page ───────────────
        logger.info("Phase 1: Rasterization and recognition")
        full_text, pages_processed, total_pages = self._recognize_pages(
            pdf_path, progress_callback
        )
        source.total_pages = total_pages
        source.pages_processed = pages_processed

        if self.config.raw_text_dir:
            self._save_raw_text(full_text, Path(pdf_path).stem)

        # ── Step 3: Segmentation ──────────────────────────────────────
        logger.info("Phase 2: Segmentation")
        segments = self.segmenter.segment(full_text)

        # Stable sort: equal ordinals keep their scan order
        questions = sorted(
            (QuestionRecord.new(id=s.ordinal, body=s.body) for s in segments),
            key=lambda q: q.id,
        )

        # ── Step 4: Validation ────────────────────────────────────────
        logger.info("Phase 3: Validation")
        report = CollectionValidator().validate(questions)

        elapsed = time.time() - start_time
        logger.info(
            f"Ingestion complete in {elapsed:.2f}s — "
            f"{len(questions)} questions from {pages_processed} pages"
        )

        return IngestionResult(
            source=source,
            questions=questions,
            report=report,
            raw_text_length=len(full_text),
            engine_version=__version__,
        )

    def _recognize_pages(
        self,
        pdf_path: str,
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> tuple[str, int, int]:
        """Return (accumulated text, pages processed, pages in range)."""
        full_text = ""
        processed = 0
        in_range = 0
        scale = self.config.render_scale

        try:
            pages = self.rasterizer.iter_pages(
                pdf_path, page_range=self.config.page_range
            )
            # Closing the generator releases the document as soon as a page fails
            with closing(pages):
                for page_num, in_range, page in pages:
                    image = self.rasterizer.render(page, scale)
                    text = self.recognizer.recognize(image)
                    logger.info(f"Page {page_num}: recognized {len(text)} chars")

                    # No separator: page boundaries are invisible to the segmenter
                    full_text += text
                    processed += 1

                    if progress_callback:
                        progress_callback(processed, in_range)
        except Exception as e:
            logger.error(f"Ingestion aborted after {processed} pages: {e}")
            raise IngestionFailure(f"Could not process {pdf_path}: {e}") from e

        return full_text, processed, in_range

    def _build_source_metadata(self, pdf_path: str) -> SourceDocument:
        try:
            file_size = os.path.getsize(pdf_path)
            file_hash = self._compute_file_hash(pdf_path)
        except OSError as e:
            raise IngestionFailure(f"Could not read {pdf_path}: {e}") from e

        return SourceDocument(
            name=Path(pdf_path).stem,
            source_pdf=os.path.basename(pdf_path),
            file_hash=file_hash,
            file_size_bytes=file_size,
        )

    def _compute_file_hash(self, filepath: str) -> str:
        """Compute SHA-256 hash of a file."""
        sha256 = hashlib.sha256()
        with open(filepath, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha256.update(chunk)
        return sha256.hexdigest()

    def _save_raw_text(self, text: str, stem: str):
        """Save the concatenated OCR text for segmentation debugging."""
        try:
            out_dir = Path(self.config.raw_text_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            out_file = out_dir / f"{stem}_ocr.txt"
            out_file.write_text(text, encoding="utf-8")
            logger.info(f"Saved OCR text snapshot: {out_file}")
        except OSError as e:
            logger.error(f"Failed to save OCR text: {e}")
