# account_tokens/services/tokens/service.py
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from account_tokens.services._shared.base import BaseService, ServiceContext
from account_tokens.services._shared.errors import (
    AuthorizationError,
    DeadlineExceededError,
    InternalError,
    ServiceError,
)
from account_tokens.services._shared.ports.revocation_store import RevocationStore, is_key_part
from account_tokens.services.tokens import codec
from account_tokens.services.tokens.dto import (
    RefreshClaims,
    RefreshTokenRecord,
    TokenPair,
    TokenServiceConfig,
    UserSnapshot,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


class TokenService(BaseService):
    """
    Token lifecycle service (issue / rotate / validate / sign out).

    Identity tokens are stateless and verified by signature only. Refresh
    tokens are single-use: each one is registered in the revocation store when
    issued and consumed (deleted) when presented for rotation.

    The instance holds only immutable configuration and a store reference, so
    it may be shared by any number of concurrent callers.
    """

    def __init__(
        self,
        *,
        store: RevocationStore,
        cfg: TokenServiceConfig,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param store: Revocation store tracking valid refresh tokens.
        :param cfg: Keys, secret and lifetimes.
        :param ctx: Default context for calls that do not supply one.
        """
        super().__init__(ctx=ctx)
        self.store = store
        self.cfg = cfg

    # ------------------------------------------------------------------ #
    # Issuance / rotation
    # ------------------------------------------------------------------ #

    def new_pair(
        self,
        ctx: ServiceContext | None,
        user: UserSnapshot,
        previous_token_id: str = "",
    ) -> TokenPair:
        """
        Issue a fresh token pair, optionally retiring ``previous_token_id``.

        Ordering: the new refresh token is registered first, then the previous
        one is deleted. When the previous token is gone (already rotated,
        signed out or expired) or cannot be deleted, the new token is rolled
        back and no pair is returned.

        :param ctx: Call context (deadline / cancellation).
        :param user: Snapshot to embed in the identity token.
        :param previous_token_id: Refresh token id being rotated, ``""`` on sign-in.
        :returns: Identity/refresh pair.
        :raises AuthorizationError: If ``previous_token_id`` is malformed or
            not registered.
        :raises InternalError: On signing or store failure, deadline expiry, or
            a user id that cannot key the revocation store.
        """
        ctx = self.resolve_ctx(ctx)

        self._check_user_id(user.id)
        if previous_token_id and not codec.is_token_id(previous_token_id):
            log.info(
                "Rejected malformed previous refresh token id",
                extra={"user_id": user.id, "token_id": previous_token_id},
            )
            raise AuthorizationError(codec.INVALID_REFRESH_TOKEN)

        # 1) + 2) Mint both tokens (pure, no I/O)
        id_token = codec.issue_identity(user, self.cfg.private_key, self.cfg.id_expires)
        refresh = codec.issue_refresh(user.id, self.cfg.refresh_secret, self.cfg.refresh_expires)

        # 3) Register the new refresh token BEFORE anything is handed out
        self.ensure_active(ctx, "registering refresh token")
        self.store.put(user.id, refresh.token_id, refresh.expires_in)

        # 4) Consume the previous token (exactly-once under concurrency)
        if previous_token_id:
            self._consume_previous(ctx, user.id, previous_token_id, refresh)

        log.debug(
            "Issued token pair",
            extra={"user_id": user.id, "token_id": refresh.token_id},
        )
        return TokenPair(id_token=id_token, refresh_token=refresh)

    def _consume_previous(
        self,
        ctx: ServiceContext,
        user_id: str,
        previous_token_id: str,
        issued: RefreshTokenRecord,
    ) -> None:
        try:
            self.ensure_active(ctx, "deleting previous refresh token")
        except DeadlineExceededError:
            # Caller is gone: the new entry stays orphaned until its TTL.
            log.warning(
                "Deadline hit after registering refresh token; leaving it orphaned",
                extra={"user_id": user_id, "token_id": issued.token_id},
            )
            raise

        try:
            deleted = self.store.delete(user_id, previous_token_id)
        except InternalError:
            log.error(
                "Could not delete previous refresh token",
                extra={"user_id": user_id, "token_id": previous_token_id},
            )
            self._rollback(user_id, issued)
            raise

        if deleted < 1:
            log.info(
                "Previous refresh token does not exist",
                extra={"user_id": user_id, "token_id": previous_token_id},
            )
            self._rollback(user_id, issued)
            raise AuthorizationError(codec.INVALID_REFRESH_TOKEN)

    def _rollback(self, user_id: str, issued: RefreshTokenRecord) -> None:
        """Best-effort removal of a token registered by a failed rotation."""
        try:
            self.store.delete(user_id, issued.token_id)
        except InternalError:
            log.error(
                "Could not roll back refresh token; it expires with its TTL",
                extra={"user_id": user_id, "token_id": issued.token_id},
            )

    def _check_user_id(self, user_id: str) -> None:
        """Refuse user ids that would alias another user's store keys."""
        if not is_key_part(user_id):
            log.error("User id cannot key the revocation store", extra={"user_id": user_id})
            raise InternalError("invalid user id")

    # ------------------------------------------------------------------ #
    # Validation (stateless)
    # ------------------------------------------------------------------ #

    def validate_identity(self, ctx: ServiceContext | None, signed_string: str) -> UserSnapshot:
        """
        Verify an identity token and return its user snapshot.

        Never consults the store, so identity tokens cannot be revoked early.

        :raises AuthorizationError: If the token is invalid or expired.
        """
        self.ensure_active(self.resolve_ctx(ctx), "validating identity token")
        return self._classified(codec.verify_identity, signed_string, self.cfg.public_key)

    def validate_refresh(self, ctx: ServiceContext | None, signed_string: str) -> RefreshClaims:
        """
        Verify a refresh token's signature and expiry.

        Does NOT consume the token; only :meth:`new_pair` does.

        :raises AuthorizationError: If the token is invalid or expired.
        """
        self.ensure_active(self.resolve_ctx(ctx), "validating refresh token")
        return self._classified(codec.verify_refresh, signed_string, self.cfg.refresh_secret)

    @staticmethod
    def _classified(fn: Callable[[str, Any], T], signed_string: str, key: Any) -> T:
        try:
            return fn(signed_string, key)
        except ServiceError:
            raise
        except Exception as exc:
            # Anything unclassified from the codec is a server-side fault.
            log.error("Unexpected token verification failure", exc_info=True)
            raise InternalError("token verification failed") from exc

    # ------------------------------------------------------------------ #
    # Sign-out
    # ------------------------------------------------------------------ #

    def sign_out(self, ctx: ServiceContext | None, user_id: str) -> int:
        """
        Revoke every refresh token of ``user_id``.

        :returns: Number of refresh tokens revoked.
        :raises InternalError: If the store fails (possibly after partial removal)
            or ``user_id`` cannot key the revocation store.
        """
        self._check_user_id(user_id)
        self.ensure_active(self.resolve_ctx(ctx), "revoking refresh tokens")
        count = self.store.delete_all(user_id)
        log.info("Signed out user", extra={"user_id": user_id, "count": count})
        return count
