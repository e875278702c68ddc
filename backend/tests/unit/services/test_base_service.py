"""Unit tests for call contexts and service error translation."""

from __future__ import annotations

import threading
import time

import pytest

from account_tokens.core.errors import APIError, Unauthorized
from account_tokens.services import (
    AuthorizationError,
    BaseService,
    DeadlineExceededError,
    InternalError,
    ServiceContext,
    ServiceError,
)


def test_context_without_deadline_never_expires():
    ctx = ServiceContext.with_timeout(None, request_id="r-1")

    assert ctx.remaining() is None
    assert not ctx.expired()


def test_context_deadline_is_relative_to_now():
    ctx = ServiceContext.with_timeout(30)

    assert 0 < ctx.remaining() <= 30
    assert not ctx.expired()


def test_context_expires_after_deadline():
    ctx = ServiceContext(deadline=time.monotonic() - 0.01)
    assert ctx.expired()


def test_context_cancel_event():
    cancel = threading.Event()
    ctx = ServiceContext.with_timeout(30, cancel_event=cancel)

    assert not ctx.expired()
    cancel.set()
    assert ctx.expired()


def test_ensure_active_names_the_step():
    service = BaseService()
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(DeadlineExceededError, match="deleting"):
        service.ensure_active(ServiceContext(cancel_event=cancel), "deleting")


def test_resolve_ctx_falls_back_to_default():
    default = ServiceContext(request_id="default")
    service = BaseService(ctx=default)

    assert service.resolve_ctx(None) is default
    other = ServiceContext(request_id="other")
    assert service.resolve_ctx(other) is other


@pytest.mark.parametrize(
    ("exc", "status", "code"),
    [
        (AuthorizationError("invalid refresh token"), 401, "unauthorized"),
        (DeadlineExceededError(), 503, "service_unavailable"),
        (InternalError("redis down"), 500, "internal_server_error"),
        (ServiceError("odd"), 400, "bad_request"),
    ],
)
def test_translate_exceptions(exc, status, code):
    translated = BaseService().translate_exceptions(exc)

    assert isinstance(translated, APIError)
    assert translated.status_code == status
    assert translated.code == code


def test_translation_hides_internal_details():
    translated = BaseService().translate_exceptions(InternalError("redis at 10.0.0.3 down"))
    assert "redis" not in translated.message


def test_authorization_message_is_kept():
    translated = BaseService().translate_exceptions(AuthorizationError("invalid identity token"))

    assert isinstance(translated, Unauthorized)
    assert translated.message == "invalid identity token"


def test_unknown_exception_is_returned_untouched():
    exc = KeyError("x")
    assert BaseService().translate_exceptions(exc) is exc
