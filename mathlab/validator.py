"""
Collection Validator
====================
Quality report over a question collection, run after ingestion and on
demand for saved files.

Reports:
    - Total / Complete Questions (body and answer present)
    - Missing IDs (gaps in the numbering sequence)
    - Duplicate IDs (allowed, but usually an OCR artefact)
    - Questions Missing Body / Answer
    - MCQs with empty option text or answers outside A-D
"""

from __future__ import annotations

import logging
import re
from collections import Counter

from .models import CollectionReport, QuestionRecord

logger = logging.getLogger(__name__)

_MCQ_ANSWER = re.compile(r"^[A-D\s,;/]+$", re.IGNORECASE)


class CollectionValidator:
    """
    Validates question records and produces a CollectionReport.
    """

    def validate(self, questions: list[QuestionRecord]) -> CollectionReport:
        report = CollectionReport()

        if not questions:
            logger.warning("No questions to validate")
            return report

        report.total_questions = len(questions)

        ids = [q.id for q in questions]
        id_counts = Counter(ids)
        report.duplicate_ids = sorted(
            num for num, count in id_counts.items() if count > 1
        )
        expected = set(range(min(ids), max(ids) + 1))
        report.missing_ids = sorted(expected - set(ids))

        complete = 0
        for q in questions:
            has_body = bool(q.body.strip())
            has_answer = bool(q.reference_answer.strip())

            if not has_body:
                report.questions_missing_body.append(q.id)
            if not has_answer:
                report.questions_missing_answer.append(q.id)
            if has_body and has_answer:
                complete += 1

            if q.is_multiple_choice:
                if any(not text.strip() for _, text in q.choices.items()):
                    report.mcq_missing_choices.append(q.id)
                if has_answer and not _MCQ_ANSWER.match(q.reference_answer):
                    report.invalid_mcq_answers.append(q.id)

        report.complete_questions = complete

        logger.info("=" * 60)
        logger.info("COLLECTION REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Questions: {report.total_questions}")
        logger.info(
            f"Complete Questions: {report.complete_questions} "
            f"({report.completion_rate}%)"
        )
        logger.info(f"Missing IDs: {len(report.missing_ids)}")
        logger.info(f"Duplicate IDs: {len(report.duplicate_ids)}")
        logger.info(
            f"Questions Missing Answer: {len(report.questions_missing_answer)}"
        )
        if report.mcq_missing_choices or report.invalid_mcq_answers:
            logger.info(
                f"MCQ Issues: {len(report.mcq_missing_choices)} missing options, "
                f"{len(report.invalid_mcq_answers)} invalid answers"
            )
        logger.info("=" * 60)

        return report
