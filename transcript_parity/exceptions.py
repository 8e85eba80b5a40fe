"""
Transcript Parity Exceptions - Error hierarchy.

Errors local to one sequence are contained by the batch runner and
reported alongside successful results. Configuration-level errors
propagate to the caller.
"""

from datetime import datetime
from typing import Any, Optional


class TranscriptParityError(Exception):
    """Base exception for all transcript parity errors."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.utcnow()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(TranscriptParityError):
    """Invalid or unreadable configuration."""
    pass


class SequenceParseError(TranscriptParityError):
    """Malformed command sequence file."""

    def __init__(
        self,
        message: str,
        file_path: str,
        line_number: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.file_path = file_path
        self.line_number = line_number
        location = file_path if line_number is None else f"{file_path}:{line_number}"
        super().__init__(f"{message} at {location}", details)
        self.reason = message

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["file_path"] = self.file_path
        data["line_number"] = self.line_number
        return data


class RecorderError(TranscriptParityError):
    """A recorder failed while producing a transcript."""

    def __init__(
        self,
        message: str,
        source: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source


class RecorderUnavailableError(RecorderError):
    """The recorder's engine cannot be launched."""
    pass


class RecordingTimeoutError(RecorderError):
    """The engine did not finish within the recorder's timeout."""

    def __init__(
        self,
        message: str,
        source: str = "",
        timeout_seconds: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source, details)
        self.timeout_seconds = timeout_seconds


class ReportFormatError(TranscriptParityError, ValueError):
    """Unsupported report output format."""

    def __init__(self, fmt: str) -> None:
        super().__init__(f"Unsupported report format: {fmt}", {"format": fmt})
        self.format = fmt
