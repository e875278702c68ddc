"""
account_tokens.services._shared.ports
=====================================

Collection of *ports* (hexagonal interfaces) that define the contracts the
token service expects from external collaborators.

Modules
-------
- :mod:`revocation_store`:
    Defines :class:`~.RevocationStore`: the key-value store that records
    which refresh-token ids are currently valid per user.

- :mod:`user_directory`:
    Defines :class:`~.UserDirectory`: read-only lookup of up-to-date user
    snapshots, owned by the user-management layer.

Design Notes
------------
Concrete adapters (e.g., Redis) implement these interfaces under
``account_tokens.infra``. The in-memory doubles shipped here are used by the
unit tests.
"""

from __future__ import annotations

from .revocation_store import (
    KEY_SEPARATOR,
    InMemoryRevocationStore,
    RevocationStore,
    is_key_part,
    store_key,
    user_prefix,
)
from .user_directory import InMemoryUserDirectory, UserDirectory

__all__ = [
    "RevocationStore",
    "InMemoryRevocationStore",
    "KEY_SEPARATOR",
    "is_key_part",
    "store_key",
    "user_prefix",
    "UserDirectory",
    "InMemoryUserDirectory",
]
