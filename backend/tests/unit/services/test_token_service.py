# tests/unit/services/test_token_service.py
"""
Unit tests for TokenService backed by the in-memory revocation store.

These tests exercise the main flows:
- sign-in pair issuance and registration
- rotation (exactly-once, reuse, expiry, concurrent reuse)
- rollback on store failure and deadline handling
- stateless validation
- sign-out of every session
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta

import pytest

from account_tokens.services import (
    AuthorizationError,
    DeadlineExceededError,
    InternalError,
    ServiceContext,
    TokenService,
)
from account_tokens.services._shared.ports import InMemoryRevocationStore
from account_tokens.services.tokens import codec


class FlakyStore(InMemoryRevocationStore):
    """In-memory store whose writes can be made to fail per token id."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_put = False
        self.fail_delete_for: set[str] = set()
        self.on_put = None

    def put(self, user_id, token_id, ttl):
        if self.fail_put:
            raise InternalError("revocation store unavailable")
        super().put(user_id, token_id, ttl)
        if self.on_put is not None:
            self.on_put()

    def delete(self, user_id, token_id):
        if token_id in self.fail_delete_for:
            raise InternalError("revocation store unavailable")
        return super().delete(user_id, token_id)


@pytest.fixture()
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def flaky_service(flaky_store, token_cfg) -> TokenService:
    return TokenService(store=flaky_store, cfg=token_cfg)


# ------------------------------- Issuance --------------------------------- #


def test_new_pair_registers_refresh_token(service, memory_store, user):
    """Sign-in issues a pair and registers exactly its refresh token."""
    pair = service.new_pair(None, user)

    assert pair.id_token.user == user
    assert pair.refresh_token.user_id == user.id
    assert memory_store.exists(user.id, pair.refresh_token.token_id)
    assert len(memory_store) == 1


def test_new_pair_uses_configured_lifetimes(service, user):
    pair = service.new_pair(None, user)

    assert pair.id_token.expires_at - pair.id_token.issued_at == timedelta(minutes=15)
    assert pair.refresh_token.expires_at - pair.refresh_token.issued_at == timedelta(days=3)


def test_new_pair_tokens_validate(service, user):
    pair = service.new_pair(None, user)

    assert service.validate_identity(None, pair.id_token.signed_string) == user
    claims = service.validate_refresh(None, pair.refresh_token.signed_string)
    assert claims.user_id == user.id
    assert claims.token_id == pair.refresh_token.token_id


def test_store_failure_on_register_returns_no_pair(flaky_service, flaky_store, user):
    """If the new token cannot be registered, no pair is handed out."""
    flaky_store.fail_put = True

    with pytest.raises(InternalError):
        flaky_service.new_pair(None, user)
    assert len(flaky_store) == 0


# ------------------------------- Rotation --------------------------------- #


def test_rotation_consumes_previous_and_registers_new(service, memory_store, user):
    first = service.new_pair(None, user)
    second = service.new_pair(None, user, first.refresh_token.token_id)

    assert not memory_store.exists(user.id, first.refresh_token.token_id)
    assert memory_store.exists(user.id, second.refresh_token.token_id)
    assert len(memory_store) == 1


def test_rotation_embeds_current_profile(service, user):
    """The identity token carries the snapshot supplied at rotation time."""
    first = service.new_pair(None, user)
    updated = replace(user, username="kostya2", website="https://new.example.com")

    second = service.new_pair(None, updated, first.refresh_token.token_id)
    assert service.validate_identity(None, second.id_token.signed_string) == updated


def test_reusing_refresh_token_fails_and_keeps_successor(service, memory_store, user):
    """A second rotation of the same token is rejected; the successor survives."""
    first = service.new_pair(None, user)
    second = service.new_pair(None, user, first.refresh_token.token_id)

    with pytest.raises(AuthorizationError) as info:
        service.new_pair(None, user, first.refresh_token.token_id)
    assert str(info.value) == "invalid refresh token"

    assert memory_store.exists(user.id, second.refresh_token.token_id)
    assert len(memory_store) == 1


def test_rotation_of_unknown_token_rolls_back(service, memory_store, user):
    with pytest.raises(AuthorizationError):
        service.new_pair(None, user, "00000000-0000-4000-8000-000000000000")
    assert len(memory_store) == 0


def test_rotation_of_expired_entry_fails(service, memory_store, user):
    first = service.new_pair(None, user)
    memory_store.expire(user.id, first.refresh_token.token_id)

    with pytest.raises(AuthorizationError):
        service.new_pair(None, user, first.refresh_token.token_id)
    assert len(memory_store) == 0


def test_rotation_is_scoped_to_user(service, memory_store, user):
    """A token id registered for one user cannot be consumed for another."""
    first = service.new_pair(None, user)
    other = replace(user, id="someone-else")

    with pytest.raises(AuthorizationError):
        service.new_pair(None, other, first.refresh_token.token_id)
    assert memory_store.exists(user.id, first.refresh_token.token_id)


@pytest.mark.parametrize(
    "previous",
    [
        "b:00000000-0000-4000-8000-000000000000",
        "00000000-0000-4000-8000-00000000000A",
        "urn:uuid:00000000-0000-4000-8000-000000000000",
        "not-a-token-id",
    ],
    ids=["separator", "uppercase", "urn", "garbage"],
)
def test_rotation_rejects_malformed_previous_id(service, memory_store, user, previous):
    """A previous id that is not a canonical UUID never reaches the store."""
    other = replace(user, id=f"{user.id}-other")
    kept = service.new_pair(None, other)

    with pytest.raises(AuthorizationError) as info:
        service.new_pair(None, user, previous)
    assert str(info.value) == "invalid refresh token"

    assert memory_store.exists(other.id, kept.refresh_token.token_id)
    assert len(memory_store) == 1


def test_user_id_with_separator_is_refused(service, memory_store, user):
    bad = replace(user, id=f"{user.id}:b")

    with pytest.raises(InternalError):
        service.new_pair(None, bad)
    with pytest.raises(InternalError):
        service.sign_out(None, bad.id)
    assert len(memory_store) == 0


def test_sign_out_does_not_touch_other_users(service, memory_store, user):
    """Signing out ``u`` leaves users whose ids start with ``u`` alone."""
    longer = replace(user, id=f"{user.id}b")
    kept = service.new_pair(None, longer)
    service.new_pair(None, user)

    assert service.sign_out(None, user.id) == 1
    assert memory_store.exists(longer.id, kept.refresh_token.token_id)


def test_concurrent_reuse_succeeds_exactly_once(service, memory_store, user):
    """N parallel rotations of one token: one pair, N-1 rejections."""
    workers = 8
    first = service.new_pair(None, user)
    barrier = threading.Barrier(workers)

    def rotate():
        barrier.wait()
        try:
            return service.new_pair(None, user, first.refresh_token.token_id)
        except AuthorizationError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: rotate(), range(workers)))

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, AuthorizationError)]
    assert len(winners) == 1
    assert len(losers) == workers - 1

    assert memory_store.exists(user.id, winners[0].refresh_token.token_id)
    assert not memory_store.exists(user.id, first.refresh_token.token_id)
    assert len(memory_store) == 1


def test_delete_failure_rolls_back_new_token(flaky_service, flaky_store, user):
    """A store error while consuming the previous token returns no pair."""
    first = flaky_service.new_pair(None, user)
    flaky_store.fail_delete_for.add(first.refresh_token.token_id)

    with pytest.raises(InternalError) as info:
        flaky_service.new_pair(None, user, first.refresh_token.token_id)
    assert not isinstance(info.value, AuthorizationError)

    # previous still registered, new one rolled back
    assert flaky_store.exists(user.id, first.refresh_token.token_id)
    assert len(flaky_store) == 1


# ------------------------------- Deadlines -------------------------------- #


def test_cancelled_context_stops_before_store(service, memory_store, user):
    cancel = threading.Event()
    cancel.set()
    ctx = ServiceContext(request_id="r-1", cancel_event=cancel)

    with pytest.raises(DeadlineExceededError):
        service.new_pair(ctx, user)
    assert len(memory_store) == 0


def test_expired_deadline_stops_before_store(service, memory_store, user):
    ctx = ServiceContext(deadline=0.0)

    with pytest.raises(DeadlineExceededError):
        service.new_pair(ctx, user)
    assert len(memory_store) == 0


def test_deadline_between_register_and_delete_orphans_new_token(
    flaky_service, flaky_store, user
):
    """Cancellation after registration leaves the previous token untouched."""
    first = flaky_service.new_pair(None, user)
    cancel = threading.Event()
    flaky_store.on_put = cancel.set

    with pytest.raises(DeadlineExceededError):
        flaky_service.new_pair(
            ServiceContext(cancel_event=cancel), user, first.refresh_token.token_id
        )

    # previous not consumed, new entry orphaned until its TTL
    assert flaky_store.exists(user.id, first.refresh_token.token_id)
    assert len(flaky_store) == 2


def test_deadline_error_is_internal():
    assert issubclass(DeadlineExceededError, InternalError)


# ------------------------------ Validation -------------------------------- #


def test_validate_refresh_does_not_consume(service, memory_store, user):
    pair = service.new_pair(None, user)

    service.validate_refresh(None, pair.refresh_token.signed_string)
    service.validate_refresh(None, pair.refresh_token.signed_string)
    assert memory_store.exists(user.id, pair.refresh_token.token_id)


def test_validate_identity_rejects_refresh_token(service, user):
    pair = service.new_pair(None, user)

    with pytest.raises(AuthorizationError):
        service.validate_identity(None, pair.refresh_token.signed_string)


def test_validate_refresh_rejects_identity_token(service, user):
    pair = service.new_pair(None, user)

    with pytest.raises(AuthorizationError):
        service.validate_refresh(None, pair.id_token.signed_string)


def test_identity_still_valid_after_sign_out(service, user):
    """Identity tokens are stateless and survive sign-out until expiry."""
    pair = service.new_pair(None, user)
    service.sign_out(None, user.id)

    assert service.validate_identity(None, pair.id_token.signed_string) == user


def test_unexpected_verification_error_is_internal(service, monkeypatch):
    def boom(signed_string, key):
        raise KeyError("uid")

    monkeypatch.setattr(codec, "verify_refresh", boom)

    with pytest.raises(InternalError) as info:
        service.validate_refresh(None, "whatever")
    assert not isinstance(info.value, AuthorizationError)


# ------------------------------- Sign-out --------------------------------- #


def test_sign_out_revokes_every_session(service, memory_store, user):
    pairs = [service.new_pair(None, user) for _ in range(3)]
    other = replace(user, id="other-user")
    kept = service.new_pair(None, other)

    assert service.sign_out(None, user.id) == 3

    for pair in pairs:
        with pytest.raises(AuthorizationError):
            service.new_pair(None, user, pair.refresh_token.token_id)
    assert memory_store.exists(other.id, kept.refresh_token.token_id)


def test_sign_out_without_sessions_returns_zero(service, user):
    assert service.sign_out(None, user.id) == 0
