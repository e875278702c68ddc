"""Redis adapters."""

from __future__ import annotations

from .redis_revocation_store import RedisRevocationStore

__all__ = ["RedisRevocationStore"]
