"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask, HTTP,
Redis or PyJWT. Every failure leaving the token service is exactly one of
:class:`AuthorizationError` or :class:`InternalError`.

The translation to HTTP responses (RFC 7807) is handled by
``account_tokens/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from adapters, the codec or the service.
    - The API layer will later translate them to APIError.
    """

    default_message = "Service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# --------------------------------------------------------------------------- #
# Classified errors
# --------------------------------------------------------------------------- #


class AuthorizationError(ServiceError):
    """
    Raised when a credential cannot be trusted.

    Covers bad signatures, expired or malformed tokens, and refresh tokens
    that are no longer registered in the revocation store. Clients only ever
    see a generic "invalid credentials" style message.
    """

    default_message = "invalid credentials"


class InternalError(ServiceError):
    """
    Raised when the service cannot complete an operation for reasons the
    caller is not responsible for (signing failure, store unreachable,
    serialization failure).
    """

    default_message = "internal error"


class DeadlineExceededError(InternalError):
    """Raised when the caller's deadline expired or the call was cancelled."""

    default_message = "deadline exceeded"


class ConfigError(RuntimeError):
    """Raised at startup when token settings are missing or unusable."""
