"""Error model for the job tracker.

Every failure the tracker can report falls into one of the categories below.
Only configuration errors stop startup; the rest are logged and leave the
presentation layer with its last valid list.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Structured error codes."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    SUBSCRIPTION_ERROR = "SUBSCRIPTION_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TrackerError(Exception):
    """Base exception carrying a structured error code."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to a dictionary suitable for logs or a UI banner."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }


class ConfigurationError(TrackerError):
    """Store or identity configuration is missing or malformed."""

    code = ErrorCode.CONFIGURATION_ERROR


class AuthenticationError(TrackerError):
    """Sign-in against the identity provider failed."""

    code = ErrorCode.AUTHENTICATION_ERROR


class SubscriptionError(TrackerError):
    """The live collection subscription failed."""

    code = ErrorCode.SUBSCRIPTION_ERROR


class WriteError(TrackerError):
    """An add, update or delete against the store failed."""

    code = ErrorCode.WRITE_ERROR


class ValidationError(TrackerError):
    """User input was rejected before reaching the store."""

    code = ErrorCode.VALIDATION_ERROR
