"""
Errors
======
Exception hierarchy shared by the ingestion pipeline, storage layer,
evaluation session and controller.
"""


class MathLabError(Exception):
    """Base class for all MathLab errors."""


class IngestionFailure(MathLabError):
    """The source document could not be opened, rendered or recognized."""


class EmptyExtraction(MathLabError):
    """Ingestion succeeded but no numbered questions were recognized."""


class ImportFormatError(MathLabError):
    """A persisted collection file is not a sequence of question records."""


class InvalidTransition(MathLabError):
    """An evaluation action was requested outside its legal phase."""


class ModeError(MathLabError):
    """An operation is not allowed in the controller's current mode."""
