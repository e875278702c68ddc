# comments in English; reST docstrings
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from account_tokens.services._shared.errors import InternalError
from account_tokens.services._shared.ports import RevocationStore, store_key, user_prefix
from account_tokens.services._shared.ports.revocation_store import ttl_seconds

log = logging.getLogger(__name__)

# Characters with a meaning inside a Redis glob pattern
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


@dataclass(slots=True)
class RedisRevocationStore(RevocationStore):
    """
    Redis-backed revocation store.

    Each valid refresh token is a plain key ``"<userID>:<tokenID>"`` with a
    TTL; the value is unused. ``DEL`` is atomic and returns the number of
    removed keys, which is what makes rotation exactly-once.

    :param r: A Redis client (already connected).
    :param scan_count: ``COUNT`` hint used while scanning a user's keys.
    """

    r: redis.Redis
    scan_count: int = 100

    # -------------------- helpers --------------------

    @staticmethod
    def _k(user_id: str, token_id: str) -> str:
        return store_key(user_id, token_id)

    @staticmethod
    def _match(user_id: str) -> str:
        escaped = _GLOB_SPECIAL.sub(r"\\\1", user_prefix(user_id))
        return f"{escaped}*"

    # -------------------- API ------------------------

    def put(self, user_id: str, token_id: str, ttl: timedelta) -> None:
        """Register a token with an expiry so leaked, un-rotated tokens die on their own."""
        try:
            self.r.set(self._k(user_id, token_id), 0, ex=ttl_seconds(ttl))
        except RedisError as exc:
            log.error(
                "Could not SET refresh token in Redis",
                extra={"user_id": user_id, "token_id": token_id},
                exc_info=True,
            )
            raise InternalError("revocation store unavailable") from exc

    def delete(self, user_id: str, token_id: str) -> int:
        try:
            return cast(int, self.r.delete(self._k(user_id, token_id)))
        except RedisError as exc:
            log.error(
                "Could not DEL refresh token in Redis",
                extra={"user_id": user_id, "token_id": token_id},
                exc_info=True,
            )
            raise InternalError("revocation store unavailable") from exc

    def delete_all(self, user_id: str) -> int:
        """
        Scan (non-blocking) over the user's keys and delete them one by one.

        Failures of individual deletions are collected; the whole operation
        reports failure once every key was attempted.
        """
        deleted = 0
        failed: list[str] = []
        try:
            for key in self.r.scan_iter(match=self._match(user_id), count=self.scan_count):
                try:
                    deleted += cast(int, self.r.delete(key))
                except RedisError:
                    log.error(
                        "Could not DEL refresh token during sign-out",
                        extra={"user_id": user_id},
                        exc_info=True,
                    )
                    failed.append(key.decode() if isinstance(key, bytes | bytearray) else str(key))
        except RedisError as exc:
            log.error(
                "Could not SCAN refresh tokens in Redis",
                extra={"user_id": user_id, "count": deleted},
                exc_info=True,
            )
            raise InternalError("revocation store unavailable") from exc

        if failed:
            raise InternalError(
                f"failed to revoke {len(failed)} refresh token(s) for user {user_id}"
            )
        return deleted

    def exists(self, user_id: str, token_id: str) -> bool:
        try:
            return cast(int, self.r.exists(self._k(user_id, token_id))) == 1
        except RedisError as exc:
            log.error(
                "Could not check refresh token in Redis",
                extra={"user_id": user_id, "token_id": token_id},
                exc_info=True,
            )
            raise InternalError("revocation store unavailable") from exc
