"""
MathLab
=======
Exam-authoring and self-testing toolkit.

Architecture:
    - Rasterizer / Recognizer: Render PDF pages and OCR them (PyMuPDF, Tesseract)
    - Segmenter: Splits recognized text into numbered question bodies
    - Engine: Orchestrates the ingestion pipeline into question records
    - Evaluation: Two-attempt grading state machine with a session timer
    - Storage: JSON export/import of question collections

Version: 1.0.0
"""

__version__ = "1.0.0"
