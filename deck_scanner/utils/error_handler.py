"""
Error taxonomy for the deck scanner.

Every failure the pipeline surfaces is a subclass of DeckScannerError so
callers can decide per class whether to skip a frame, halt a sync batch or
abort start-up.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class DeckScannerError(Exception):
    """Base exception class for all deck scanner errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DeckScannerError):
    """Raised when configuration or input documents are invalid."""
    pass


class InitializationFailure(DeckScannerError):
    """Raised when a backend (store, model, OCR) cannot be brought up.

    Fatal to the pipeline instance; never retried internally.
    """
    pass


class RecognitionUnavailable(DeckScannerError):
    """Raised when the classifier or OCR backend fails for a single frame.

    The session skips the frame and keeps scanning.
    """
    pass


class ConstraintViolation(DeckScannerError):
    """Raised when a write would break a uniqueness or reference constraint."""
    pass


class SyncDispatchFailure(DeckScannerError):
    """Raised when a sync task cannot be delivered to the remote service."""
    pass


class SessionStateError(DeckScannerError):
    """Raised when a session transition is requested from the wrong state."""
    pass


class CaptureError(DeckScannerError):
    """Raised when the capture device cannot deliver frames."""
    pass


@dataclass
class ErrorContext:
    """Context information for error reporting."""
    operation: str
    module: str
    function: str
    input_data: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


def validate_required_fields(
    data: Dict[str, Any], required_fields: List[str], context: ErrorContext
) -> None:
    """
    Validate that required fields are present in data.

    Args:
        data: Dictionary to validate
        required_fields: List of required field names
        context: Error context for reporting

    Raises:
        ConfigurationError: If required fields are missing
    """
    missing_fields = [
        field for field in required_fields if field not in data or data[field] is None
    ]

    if missing_fields:
        raise ConfigurationError(
            f"Missing required fields: {missing_fields}",
            details={
                "missing_fields": missing_fields,
                "available_fields": list(data.keys()),
                "operation": context.operation,
                "function": f"{context.module}.{context.function}",
            }
        )
