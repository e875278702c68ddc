"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any, Final

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from dotenv import load_dotenv

from account_tokens.services._shared.errors import ConfigError
from account_tokens.services.tokens.dto import TokenServiceConfig

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

DEFAULT_ID_TOKEN_EXPIRATION: Final[int] = 15 * 60
DEFAULT_REFRESH_TOKEN_EXPIRATION: Final[int] = 3 * 24 * 60 * 60

# Load .env in development (no-op when absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, raising :class:`ConfigError` if malformed."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val, 0)
    except ValueError as exc:
        raise ConfigError(f"could not parse {name} as int: {val!r}") from exc


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    PRIVATE_KEY_FILE / PUBLIC_KEY_FILE: str | None
        Paths to the PEM-encoded RSA key pair signing identity tokens.
    PRIVATE_KEY / PUBLIC_KEY: str | None
        Inline PEM alternatives to the key files (take precedence).
    REFRESH_SECRET: str | None
        HMAC secret signing refresh tokens.
    ID_TOKEN_EXPIRATION: int
        Identity token lifetime in seconds.
    REFRESH_TOKEN_EXPIRATION: int
        Refresh token lifetime in seconds.
    REDIS_URL: str | None
        Connection URL of the revocation store.
    REDIS_SOCKET_TIMEOUT: float
        Per-command socket timeout for Redis, in seconds.
    HANDLER_TIMEOUT: float
        Deadline given to each request's token operations, in seconds.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    DEBUG / TESTING: bool
        Flask built-ins.

    Notes
    -----
    Values are sourced from environment variables once, when this module is
    imported; nothing below the factory reads the environment again.
    """

    API_BASE_PREFIX = "/api"

    # Keys / secrets
    PRIVATE_KEY_FILE = os.getenv("PRIVATE_KEY_FILE")
    PUBLIC_KEY_FILE = os.getenv("PUBLIC_KEY_FILE")
    PRIVATE_KEY = os.getenv("PRIVATE_KEY")
    PUBLIC_KEY = os.getenv("PUBLIC_KEY")
    REFRESH_SECRET = os.getenv("REFRESH_SECRET")

    # Lifetimes (seconds)
    ID_TOKEN_EXPIRATION = env_int("ID_TOKEN_EXPIRATION", DEFAULT_ID_TOKEN_EXPIRATION)
    REFRESH_TOKEN_EXPIRATION = env_int("REFRESH_TOKEN_EXPIRATION", DEFAULT_REFRESH_TOKEN_EXPIRATION)

    # Revocation store
    REDIS_URL = os.getenv("REDIS_URL")
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))

    # Request handling
    HANDLER_TIMEOUT = float(os.getenv("HANDLER_TIMEOUT", "5.0"))
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Leaves ``REDIS_URL`` unset; tests inject a fakeredis-backed store.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    REDIS_URL = os.getenv("TEST_REDIS_URL")
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


# --------------------------------------------------------------------------- #
# Token service settings
# --------------------------------------------------------------------------- #


def _read_pem(settings: Mapping[str, Any], inline_key: str, file_key: str) -> bytes:
    inline = settings.get(inline_key)
    if inline:
        return inline.encode() if isinstance(inline, str) else bytes(inline)
    path = settings.get(file_key)
    if not path:
        raise ConfigError(f"{inline_key} or {file_key} must be set")
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"could not read {file_key} {path!r}: {exc}") from exc


def load_private_key(pem: bytes) -> RSAPrivateKey:
    """Parse a PEM-encoded RSA private key."""
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"could not parse private key: {exc}") from exc
    if not isinstance(key, RSAPrivateKey):
        raise ConfigError("private key is not an RSA key")
    return key


def load_public_key(pem: bytes) -> RSAPublicKey:
    """Parse a PEM-encoded RSA public key."""
    try:
        key = serialization.load_pem_public_key(pem)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"could not parse public key: {exc}") from exc
    if not isinstance(key, RSAPublicKey):
        raise ConfigError("public key is not an RSA key")
    return key


def _seconds(settings: Mapping[str, Any], name: str, default: int) -> timedelta:
    raw = settings.get(name, default)
    try:
        seconds = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"could not parse {name} as int: {raw!r}") from exc
    if seconds <= 0:
        raise ConfigError(f"{name} must be positive, got {seconds}")
    return timedelta(seconds=seconds)


def load_token_config(settings: Mapping[str, Any]) -> TokenServiceConfig:
    """Build the immutable :class:`TokenServiceConfig` from app settings.

    Parameters
    ----------
    settings: Mapping[str, Any]
        Usually ``app.config``; see :class:`BaseConfig` for the keys.

    Returns
    -------
    TokenServiceConfig
        Parsed keys, secret and lifetimes.

    Raises
    ------
    ConfigError
        If a key cannot be read or parsed, the secret is missing, or a
        lifetime is not a positive integer.
    """
    private_key = load_private_key(_read_pem(settings, "PRIVATE_KEY", "PRIVATE_KEY_FILE"))
    public_key = load_public_key(_read_pem(settings, "PUBLIC_KEY", "PUBLIC_KEY_FILE"))

    secret = settings.get("REFRESH_SECRET")
    if not secret:
        raise ConfigError("REFRESH_SECRET must be set")

    return TokenServiceConfig(
        private_key=private_key,
        public_key=public_key,
        refresh_secret=str(secret),
        id_expires=_seconds(settings, "ID_TOKEN_EXPIRATION", DEFAULT_ID_TOKEN_EXPIRATION),
        refresh_expires=_seconds(
            settings, "REFRESH_TOKEN_EXPIRATION", DEFAULT_REFRESH_TOKEN_EXPIRATION
        ),
    )
