"""
ZeroEval SDK exceptions.
"""

from typing import Any


class ZeroEvalError(Exception):
    """Base exception for ZeroEval SDK errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(ZeroEvalError):
    """Raised when a required setting (API key, workspace id) is missing."""


class AuthenticationError(ZeroEvalError):
    """Raised when the API rejects the API key."""


class SignalValidationError(ZeroEvalError):
    """Raised before sending a signal that the API would reject."""


class APIError(ZeroEvalError):
    """Raised when the API answers with an error status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class NotFoundError(APIError):
    """Raised when the requested resource does not exist."""
