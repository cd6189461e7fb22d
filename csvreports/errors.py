"""Error kinds raised by the ingestion and analysis engine."""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Report


class ReportError(Exception):
    """Base class for every engine failure."""

    def __init__(self, message: str = "", report: Optional["Report"] = None):
        super().__init__(message)
        # Set on ingestion failures: the report as it stood, already marked ERROR
        self.report = report


class EmptyInput(ReportError):
    """The upload has zero bytes."""


class UnsupportedFormat(ReportError):
    """The file name or content is not delimited text."""


class ParseFailure(ReportError):
    """A record could not be parsed; the whole ingestion is aborted."""


class NotFound(ReportError):
    """No report with the given id."""


class Forbidden(NotFound):
    """The report exists but the requester may not see it.

    Subclasses NotFound so callers that do not care about the difference
    never leak whether the id exists.
    """


class StoreFailure(ReportError):
    """The persistence layer failed. Not retried."""
