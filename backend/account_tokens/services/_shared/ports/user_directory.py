from __future__ import annotations

import threading
from typing import Protocol

from account_tokens.services.tokens.dto import UserSnapshot


class UserDirectory(Protocol):
    """
    Read-only access to up-to-date user profiles.

    Implementations belong to the user-management layer and MUST return
    snapshots that are already stripped of credential material.
    """

    def get(self, user_id: str) -> UserSnapshot | None:
        """Return the current snapshot for ``user_id`` (``None`` if unknown)."""


class InMemoryUserDirectory(UserDirectory):
    """Simple dict-backed directory used in unit tests and local wiring."""

    def __init__(self, users: list[UserSnapshot] | None = None) -> None:
        self._users: dict[str, UserSnapshot] = {u.id: u for u in users or []}
        self._lock = threading.Lock()

    def add(self, user: UserSnapshot) -> None:
        with self._lock:
            self._users[user.id] = user

    def remove(self, user_id: str) -> None:
        with self._lock:
            self._users.pop(user_id, None)

    def get(self, user_id: str) -> UserSnapshot | None:
        with self._lock:
            return self._users.get(user_id)
