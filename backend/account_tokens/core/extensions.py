"""Global extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from account_tokens.core.config import load_token_config
from account_tokens.services._shared.ports import RevocationStore, UserDirectory
from account_tokens.services.tokens.service import TokenService

TOKEN_SERVICE_KEY = "token_service"
USER_DIRECTORY_KEY = "user_directory"
REDIS_CLIENT_KEY = "redis_client"

redis_client: redis.Redis | None = None


def init_app(
    app: Flask,
    *,
    revocation_store: RevocationStore | None = None,
    user_directory: UserDirectory | None = None,
) -> None:
    """Initialize Redis and build the token service.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances.
    revocation_store: RevocationStore | None
        Store to use instead of a Redis client built from ``REDIS_URL``
        (tests pass a fakeredis-backed store).
    user_directory: UserDirectory | None
        Profile lookup used by the refresh endpoint.

    Raises
    ------
    ConfigError
        If the token settings are incomplete.
    RuntimeError
        If no store was given and Redis is unreachable or unconfigured.
    """
    from account_tokens.infra.redis import RedisRevocationStore

    cfg = load_token_config(app.config)

    if revocation_store is None:
        revocation_store = RedisRevocationStore(r=_connect_redis(app))
    elif isinstance(revocation_store, RedisRevocationStore):
        app.extensions[REDIS_CLIENT_KEY] = revocation_store.r

    app.extensions[TOKEN_SERVICE_KEY] = TokenService(store=revocation_store, cfg=cfg)
    if user_directory is not None:
        app.extensions[USER_DIRECTORY_KEY] = user_directory


def _connect_redis(app: Flask) -> redis.Redis:
    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        raise RuntimeError("REDIS_URL is not configured.")

    timeout = app.config.get("REDIS_SOCKET_TIMEOUT")
    client = redis.Redis.from_url(
        redis_url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    redis_client = client
    app.extensions[REDIS_CLIENT_KEY] = client
    return client


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    client = current_app.extensions.get(REDIS_CLIENT_KEY, redis_client)
    if client is None:
        raise RuntimeError("Redis client is not initialized. Call init_app() first.")
    return client


def get_token_service() -> TokenService:
    """Return the token service bound to the current application."""
    service = current_app.extensions.get(TOKEN_SERVICE_KEY)
    if service is None:
        raise RuntimeError("Token service is not initialized. Call init_app() first.")
    return service


def get_user_directory() -> UserDirectory:
    """Return the user directory bound to the current application."""
    directory = current_app.extensions.get(USER_DIRECTORY_KEY)
    if directory is None:
        raise RuntimeError("User directory is not configured.")
    return directory
