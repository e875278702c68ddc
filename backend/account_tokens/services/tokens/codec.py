"""
Stateless minting and verification of identity and refresh tokens.

Identity tokens are RS256 JWTs carrying ``{user, iat, exp}``; refresh tokens
are HS256 JWTs carrying ``{uid, jti, iat, exp}``. Nothing here performs I/O
or touches the revocation store.

Every PyJWT / cryptography failure is wrapped into an
:class:`~account_tokens.services._shared.errors.AuthorizationError` (verification)
or :class:`~account_tokens.services._shared.errors.InternalError` (signing);
the original exception is chained and logged, never returned.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from marshmallow import ValidationError

from account_tokens.schemas.tokens import UserSnapshotSchema
from account_tokens.services._shared.errors import AuthorizationError, InternalError
from account_tokens.services._shared.ports.revocation_store import is_key_part
from account_tokens.services.tokens.dto import (
    IdentityToken,
    RefreshClaims,
    RefreshTokenRecord,
    UserSnapshot,
)

log = logging.getLogger(__name__)

ID_TOKEN_ALGORITHM = "RS256"
REFRESH_TOKEN_ALGORITHM = "HS256"

INVALID_ID_TOKEN = "invalid identity token"
INVALID_REFRESH_TOKEN = "invalid refresh token"

_user_schema = UserSnapshotSchema()


def _now() -> datetime:
    # JWT timestamps have second resolution
    return datetime.now(UTC).replace(microsecond=0)


def _ts(dt: datetime) -> int:
    return int(dt.timestamp())


def _sign(payload: dict[str, Any], key: Any, algorithm: str, kind: str, user_id: str) -> str:
    try:
        return jwt.encode(payload, key, algorithm=algorithm)
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        log.error(
            "Failed to sign %s token",
            kind,
            extra={"user_id": user_id},
            exc_info=True,
        )
        raise InternalError(f"failed to sign {kind} token") from exc


# --------------------------------------------------------------------------- #
# Identity tokens
# --------------------------------------------------------------------------- #


def issue_identity(user: UserSnapshot, key: RSAPrivateKey, ttl: timedelta) -> IdentityToken:
    """
    Mint an identity token for ``user``.

    :param user: Snapshot to embed (never contains credential material).
    :param key: RSA private key.
    :param ttl: Lifetime; a negative value yields an already expired token.
    :returns: Signed identity token.
    :raises InternalError: If signing fails (key misconfiguration).
    """
    issued_at = _now()
    expires_at = issued_at + ttl
    payload = {
        "user": _user_schema.dump(user),
        "iat": _ts(issued_at),
        "exp": _ts(expires_at),
    }
    signed = _sign(payload, key, ID_TOKEN_ALGORITHM, "identity", user.id)
    return IdentityToken(
        signed_string=signed,
        user=user,
        issued_at=issued_at,
        expires_at=expires_at,
    )


def verify_identity(signed_string: str, key: RSAPublicKey) -> UserSnapshot:
    """
    Check signature and expiry of an identity token and return its user.

    :raises AuthorizationError: On any failure; the cause is only logged.
    """
    try:
        claims = jwt.decode(
            signed_string,
            key,
            algorithms=[ID_TOKEN_ALGORITHM],
            options={"require": ["user", "iat", "exp"]},
        )
        return _user_schema.load(claims["user"])
    except (jwt.PyJWTError, ValidationError, TypeError, ValueError) as exc:
        log.info("Unable to validate or parse identity token: %s", exc)
        raise AuthorizationError(INVALID_ID_TOKEN) from exc


# --------------------------------------------------------------------------- #
# Refresh tokens
# --------------------------------------------------------------------------- #


def is_token_id(value: str) -> bool:
    """Return True if ``value`` is a token id in canonical UUID form."""
    try:
        return str(uuid.UUID(value)) == value
    except (TypeError, ValueError, AttributeError):
        return False


def new_token_id() -> str:
    """Return a random 128-bit token identifier (UUID4)."""
    return str(uuid.uuid4())


def issue_refresh(user_id: str, secret: str, ttl: timedelta) -> RefreshTokenRecord:
    """
    Mint a refresh token with a fresh random id.

    :param user_id: Owner of the token.
    :param secret: HMAC secret.
    :param ttl: Lifetime.
    :returns: Record holding the signed string and its identifiers.
    :raises InternalError: If signing fails.
    """
    token_id = new_token_id()
    issued_at = _now()
    expires_at = issued_at + ttl
    payload = {
        "uid": user_id,
        "jti": token_id,
        "iat": _ts(issued_at),
        "exp": _ts(expires_at),
    }
    signed = _sign(payload, secret, REFRESH_TOKEN_ALGORITHM, "refresh", user_id)
    return RefreshTokenRecord(
        signed_string=signed,
        token_id=token_id,
        user_id=user_id,
        issued_at=issued_at,
        expires_at=expires_at,
    )


def verify_refresh(signed_string: str, secret: str) -> RefreshClaims:
    """
    Check signature and expiry of a refresh token.

    Does not consult the revocation store: a token that verifies here may
    already have been consumed.

    :raises AuthorizationError: On any failure; the cause is only logged.
    """
    try:
        claims = jwt.decode(
            signed_string,
            secret,
            algorithms=[REFRESH_TOKEN_ALGORITHM],
            options={"require": ["uid", "jti", "iat", "exp"]},
        )
        user_id = claims["uid"]
        if not is_key_part(user_id):
            raise ValueError("uid claim must be a non-empty string without separators")
        token_id = str(uuid.UUID(str(claims["jti"])))
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        log.info("Unable to validate or parse refresh token: %s", exc)
        raise AuthorizationError(INVALID_REFRESH_TOKEN) from exc
    return RefreshClaims(user_id=user_id, token_id=token_id)
