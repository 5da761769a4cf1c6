"""
Custom exceptions for the Game Session Client.

This module defines the exception hierarchy used to classify failures of
remote calls before they are normalized into a RequestOutcome.
"""

from typing import Optional


class GameSessionClientError(Exception):
    """Base exception for all Game Session Client errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class NotAuthenticatedError(GameSessionClientError):
    """Raised when an authorized call is attempted without a session."""

    def __init__(self, message: str = "Not logged in", details: str = None):
        super().__init__(message, details)


class TransportError(GameSessionClientError):
    """Raised when the backend cannot be reached or the request times out."""

    def __init__(self, message: str = "Network error", details: str = None):
        super().__init__(message, details)


class ApiError(GameSessionClientError):
    """Raised when the backend answers with a non-success result."""

    def __init__(self, message: str = "API error", details: str = None,
                 status: Optional[int] = None):
        self.status = status
        super().__init__(message, details)


class MalformedResponseError(GameSessionClientError):
    """Raised when a response body does not match the expected schema."""

    def __init__(self, message: str = "Malformed response", details: str = None):
        super().__init__(message, details)


class CredentialStoreError(GameSessionClientError):
    """Raised when persisted credentials cannot be written."""

    def __init__(self, message: str = "Credential store error", details: str = None):
        super().__init__(message, details)


class ConfigurationError(GameSessionClientError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str = "Configuration error", details: str = None):
        super().__init__(message, details)
