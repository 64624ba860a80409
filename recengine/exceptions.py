"""
Exception hierarchy for the recommendation workflow engine.

The API client raises these; the workflow engine catches them at every
operation boundary and turns them into its error slot or an OperationResult.
"""

from typing import Optional


class RecEngineError(Exception):
    """Base exception for all engine errors."""
    pass


class ConfigurationError(RecEngineError):
    """Missing or invalid configuration (base URL, credentials, etc.)."""
    pass


class ValidationError(RecEngineError):
    """Client-side rejection before any network call is made."""
    pass


class APIError(RecEngineError):
    """The backend answered but reported a failure."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NotFoundError(APIError):
    """No data yet for a generation or stage. Treated as empty-state."""
    pass


class TransportError(RecEngineError):
    """Connection-level failure (refused, reset, DNS, aborted)."""
    pass


class RequestTimeoutError(TransportError):
    """The request was aborted by its timeout; the server may still finish."""
    pass


NOT_FOUND_MARKERS = ("not found", "No recommendations")


def is_not_found_message(message: Optional[str]) -> bool:
    """Return True if a backend error message means "no data yet"."""
    if not message:
        return False
    return any(marker in message for marker in NOT_FOUND_MARKERS)
