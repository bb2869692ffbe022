"""Exception hierarchy for G-code analysis and reporting."""

from typing import Optional


class GCodeReportError(Exception):
    """Base class for all errors raised by gcode_report."""


class ValidationError(GCodeReportError, ValueError):
    """Input rejected before any parsing (e.g. unsupported file extension)."""


class NetworkError(GCodeReportError):
    """Transport failure while submitting or polling an analysis.

    Retryable by an explicit new request.

    Attributes:
        status_code: HTTP status code when the failure came from a response
        details: Response body or underlying error text
    """

    def __init__(
        self, message: str, status_code: Optional[int] = None, details: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AnalysisTimeoutError(GCodeReportError):
    """Client-side polling ceiling exceeded. Terminal; a retry needs a fresh submission."""


class AnalysisFailedError(GCodeReportError):
    """The remote analysis reported an error, or finished without a result."""


class AnalysisCancelledError(GCodeReportError):
    """The job was cancelled before reaching a terminal status."""


class InvalidTransitionError(GCodeReportError):
    """A job status change that would break monotonic ordering."""


class PersistenceError(GCodeReportError):
    """Saving a report or uploading the raw file failed."""
