from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Protocol

KEY_SEPARATOR = ":"


def is_key_part(value: str) -> bool:
    """Return True if ``value`` may be used as one half of a store key."""
    return isinstance(value, str) and bool(value) and KEY_SEPARATOR not in value


def _require_key_part(name: str, value: str) -> None:
    # Exactly one separator per key, so a prefix never spans two users
    if not is_key_part(value):
        raise ValueError(f"{name} must be non-empty and free of {KEY_SEPARATOR!r}: {value!r}")


def store_key(user_id: str, token_id: str) -> str:
    """
    Return the revocation-store key ``"<userID>:<tokenID>"``.

    :raises ValueError: If either part is empty or contains the separator.
    """
    _require_key_part("user_id", user_id)
    _require_key_part("token_id", token_id)
    return f"{user_id}{KEY_SEPARATOR}{token_id}"


def user_prefix(user_id: str) -> str:
    """
    Return the ``"<userID>:"`` prefix shared by every key of ``user_id``.

    :raises ValueError: If ``user_id`` is empty or contains the separator.
    """
    _require_key_part("user_id", user_id)
    return f"{user_id}{KEY_SEPARATOR}"


def ttl_seconds(ttl: timedelta) -> int:
    """Whole seconds for a store TTL, never below one."""
    return max(1, int(ttl.total_seconds()))


class RevocationStore(Protocol):
    """
    Fast key-value store of currently valid refresh tokens.

    An entry ``(user_id, token_id)`` exists if and only if that refresh token
    may still be rotated. ``delete`` MUST be atomic and report an accurate
    count: exactly-once rotation depends on it. Ids containing
    ``KEY_SEPARATOR`` (or empty ones) are refused with :class:`ValueError`.
    """

    def put(self, user_id: str, token_id: str, ttl: timedelta) -> None:
        """
        Register a token as valid. The entry expires after ``ttl`` even if it
        is never deleted.

        :raises InternalError: If the store is unreachable.
        """

    def delete(self, user_id: str, token_id: str) -> int:
        """
        Remove one entry.

        :returns: Number of entries removed (``0`` if already consumed,
            expired or never registered).
        :raises InternalError: If the store is unreachable.
        """

    def delete_all(self, user_id: str) -> int:
        """
        Remove every entry of ``user_id`` (mass sign-out).

        Best effort: every key is attempted; if any single deletion fails the
        call raises once all keys were tried.

        :returns: Number of entries removed.
        :raises InternalError: If the scan fails or any deletion failed.
        """

    def exists(self, user_id: str, token_id: str) -> bool:
        """Return True if the entry is currently registered."""


class InMemoryRevocationStore(RevocationStore):
    """
    In-memory revocation store with per-entry expiry.

    .. note::
       Uses a threading lock to simulate the atomicity of the real store in
       unit tests. Expired entries are purged lazily.
    """

    def __init__(self) -> None:
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    @staticmethod
    def _now() -> float:
        return time.monotonic()

    def _alive(self, key: str) -> bool:
        expires_at = self._entries.get(key)
        if expires_at is None:
            return False
        if expires_at <= self._now():
            del self._entries[key]
            return False
        return True

    # -------------------------- API ----------------------------

    def put(self, user_id: str, token_id: str, ttl: timedelta) -> None:
        with self._lock:
            self._entries[store_key(user_id, token_id)] = self._now() + ttl_seconds(ttl)

    def delete(self, user_id: str, token_id: str) -> int:
        key = store_key(user_id, token_id)
        with self._lock:
            if not self._alive(key):
                return 0
            del self._entries[key]
            return 1

    def delete_all(self, user_id: str) -> int:
        prefix = user_prefix(user_id)
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            removed = sum(1 for k in keys if self._alive(k))
            for k in keys:
                self._entries.pop(k, None)
            return removed

    def exists(self, user_id: str, token_id: str) -> bool:
        with self._lock:
            return self._alive(store_key(user_id, token_id))

    def expire(self, user_id: str, token_id: str) -> None:
        """Force an entry to be treated as expired (test helper)."""
        key = store_key(user_id, token_id)
        with self._lock:
            if key in self._entries:
                self._entries[key] = self._now()

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for k in list(self._entries) if self._alive(k))
