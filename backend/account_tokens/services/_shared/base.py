# account_tokens/services/_shared/base.py
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from account_tokens.core import errors as api_errors
from account_tokens.services._shared.errors import (
    AuthorizationError,
    DeadlineExceededError,
    InternalError,
    ServiceError,
)


@dataclass(frozen=True, slots=True)
class ServiceContext:
    """
    Carry cross-cutting, caller-constructed call data (tracing, deadline).

    :param request_id: Correlation id for logging/tracing.
    :param deadline: Absolute :func:`time.monotonic` instant after which the
        call must stop before its next store round-trip.
    :param cancel_event: Optional event the caller sets to abandon the call.
    """

    request_id: str | None = None
    deadline: float | None = None
    cancel_event: threading.Event | None = None

    @classmethod
    def with_timeout(
        cls,
        seconds: float | None,
        *,
        request_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ServiceContext:
        """
        Build a context whose deadline is ``seconds`` from now.

        :param seconds: Relative timeout; ``None`` or ``<= 0`` disables it.
        :returns: New context.
        """
        deadline = time.monotonic() + seconds if seconds and seconds > 0 else None
        return cls(request_id=request_id, deadline=deadline, cancel_event=cancel_event)

    def remaining(self) -> float | None:
        """Seconds left before the deadline (``None`` when unbounded)."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def expired(self) -> bool:
        """Return True if the call was cancelled or its deadline passed."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Hold the default call context.
    * Enforce caller deadlines before network round-trips.
    * Centralize error translation for the delivery layer.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Default context used when a call does not supply one.
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- Context helpers -----------------------------

    def resolve_ctx(self, ctx: ServiceContext | None) -> ServiceContext:
        """Return ``ctx`` or the service default."""
        return ctx if ctx is not None else self.ctx

    def ensure_active(self, ctx: ServiceContext, step: str) -> None:
        """
        Stop the call when its deadline passed or it was cancelled.

        :param ctx: Call context.
        :param step: Name of the step about to run (for the error message).
        :raises DeadlineExceededError: If the call must not continue.
        """
        if ctx.expired():
            raise DeadlineExceededError(f"deadline exceeded before {step}")

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, AuthorizationError):
            # -> 401 Unauthorized, no detail about the cause
            return api_errors.Unauthorized(exc.message)

        if isinstance(exc, DeadlineExceededError):
            # -> 503 Service Unavailable
            return api_errors.APIError(
                message="Request timed out",
                status_code=503,
                code="service_unavailable",
            )

        if isinstance(exc, InternalError):
            # -> 500, never leak internal details
            return api_errors.APIError(
                message="Unexpected error",
                status_code=500,
                code="internal_server_error",
            )

        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
