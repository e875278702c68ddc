"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request

from account_tokens.core.errors import Unauthorized
from account_tokens.core.extensions import get_token_service
from account_tokens.core.logger import ensure_request_id
from account_tokens.services._shared.base import ServiceContext

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "Bearer "


def request_context() -> ServiceContext:
    """Build the per-request service context (request id + handler deadline)."""

    return ServiceContext.with_timeout(
        current_app.config.get("HANDLER_TIMEOUT"),
        request_id=ensure_request_id(),
    )


def bearer_token() -> str:
    """Extract the token of an ``Authorization: Bearer <token>`` header."""

    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX) or not header[len(BEARER_PREFIX) :].strip():
        raise Unauthorized("Must provide Authorization header with format `Bearer {token}`")
    return header[len(BEARER_PREFIX) :].strip()


def auth_user(func: F) -> F:
    """
    Require a valid identity token and pass its user to the view.

    The view receives ``ctx`` (:class:`ServiceContext`) and ``user``
    (:class:`UserSnapshot`) as keyword arguments.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        ctx = request_context()
        user = get_token_service().validate_identity(ctx, bearer_token())
        return func(*args, ctx=ctx, user=user, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response
