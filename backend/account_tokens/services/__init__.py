"""Service layer public API.

This package exposes the essential building blocks for the service layer so
that callers can import from :mod:`account_tokens.services` without knowing
the internal structure.

Re-exports
----------
- Base primitives (from ``account_tokens.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Errors (from ``account_tokens.services._shared.errors``)
    * :class:`ServiceError`, :class:`AuthorizationError`,
      :class:`InternalError`, :class:`DeadlineExceededError`,
      :class:`ConfigError`

- Token service (from ``account_tokens.services.tokens``)
    * :class:`TokenService`
    * DTOs: :class:`UserSnapshot`, :class:`TokenPair`,
      :class:`RefreshTokenRecord`, :class:`RefreshClaims`,
      :class:`TokenServiceConfig`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from ._shared.errors import (
    AuthorizationError,
    ConfigError,
    DeadlineExceededError,
    InternalError,
    ServiceError,
)
from .tokens.dto import (
    IdentityToken,
    RefreshClaims,
    RefreshTokenRecord,
    TokenPair,
    TokenServiceConfig,
    UserSnapshot,
)
from .tokens.service import TokenService

__all__ = [
    "BaseService",
    "ServiceContext",
    "ServiceError",
    "AuthorizationError",
    "ConfigError",
    "InternalError",
    "DeadlineExceededError",
    "IdentityToken",
    "RefreshClaims",
    "RefreshTokenRecord",
    "TokenPair",
    "TokenServiceConfig",
    "UserSnapshot",
    "TokenService",
]
