# account_tokens/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

# ---------------------------- Domain DTOs --------------------------------- #


@dataclass(frozen=True, slots=True)
class UserSnapshot:
    """
    Immutable copy of the user-identifying fields carried by an identity token.

    Carries no password or other credential material.

    :param id: User identifier (UUID string).
    :type id: str
    :param email: Email address.
    :type email: str
    :param username: Display name.
    :type username: str
    :param image_url: Profile image reference.
    :type image_url: str
    :param website: Personal website.
    :type website: str
    """

    id: str
    email: str = ""
    username: str = ""
    image_url: str = ""
    website: str = ""


@dataclass(frozen=True, slots=True)
class IdentityToken:
    """
    Signed, self-contained identity credential.

    :param signed_string: Encoded RS256 JWT.
    :param user: Snapshot embedded in the payload.
    :param issued_at: ``iat`` claim.
    :param expires_at: ``exp`` claim.
    """

    signed_string: str
    user: UserSnapshot
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Refresh token as minted by the codec.

    :param signed_string: Encoded HS256 JWT.
    :param token_id: Random, globally unique id (``jti``).
    :param user_id: Owner user id (``uid``).
    :param issued_at: ``iat`` claim.
    :param expires_at: ``exp`` claim.
    """

    signed_string: str
    token_id: str
    user_id: str
    issued_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> timedelta:
        """Lifetime left from now until ``expires_at`` (negative once expired)."""
        return self.expires_at - datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class RefreshClaims:
    """Identifiers recovered from a verified refresh token."""

    user_id: str
    token_id: str


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Output DTO with the identity and refresh tokens of one issuance.

    :param id_token: Fresh identity token.
    :type id_token: IdentityToken
    :param refresh_token: Fresh refresh token (already registered).
    :type refresh_token: RefreshTokenRecord
    """

    id_token: IdentityToken
    refresh_token: RefreshTokenRecord


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenServiceConfig:
    """
    Token emission configuration, built once at startup.

    :param private_key: RSA key signing identity tokens.
    :type private_key: RSAPrivateKey
    :param public_key: RSA key verifying identity tokens.
    :type public_key: RSAPublicKey
    :param refresh_secret: HMAC secret for refresh tokens.
    :type refresh_secret: str
    :param id_expires: Identity token lifetime.
    :type id_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    private_key: RSAPrivateKey
    public_key: RSAPublicKey
    refresh_secret: str
    id_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=3)

    def __repr__(self) -> str:
        return (
            "TokenServiceConfig(id_expires={!r}, refresh_expires={!r}, "
            "refresh_secret='***')".format(self.id_expires, self.refresh_expires)
        )
