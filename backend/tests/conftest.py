"""Pytest fixtures for the token service, its stores and the Flask app.

RSA keys are generated once per session; every test gets fresh stores so
registrations never leak between cases.
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import timedelta
from uuid import uuid4

import fakeredis
import pytest
from flask import Flask

from account_tokens import create_app
from account_tokens.core.config import TestingConfig
from account_tokens.infra.redis import RedisRevocationStore
from account_tokens.services import TokenService, TokenServiceConfig, UserSnapshot
from account_tokens.services._shared.ports import InMemoryRevocationStore, InMemoryUserDirectory
from tests.helpers.tokens import REFRESH_SECRET, KeyPair, generate_keys


@pytest.fixture(scope="session")
def rsa_keys() -> KeyPair:
    """Session-wide RSA key pair used to sign identity tokens."""
    return generate_keys()


@pytest.fixture(scope="session")
def other_rsa_keys() -> KeyPair:
    """A second, unrelated key pair (for signature mismatch cases)."""
    return generate_keys()


@pytest.fixture()
def token_cfg(rsa_keys: KeyPair) -> TokenServiceConfig:
    """Token settings with short identity and long refresh lifetimes."""
    return TokenServiceConfig(
        private_key=rsa_keys.private_key,
        public_key=rsa_keys.public_key,
        refresh_secret=REFRESH_SECRET,
        id_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=3),
    )


@pytest.fixture()
def user() -> UserSnapshot:
    """A user snapshot with every profile field populated."""
    return UserSnapshot(
        id=str(uuid4()),
        email="kostya@kostya.com",
        username="kostya",
        image_url="https://images.example.com/kostya.png",
        website="https://kostya.example.com",
    )


@pytest.fixture()
def memory_store() -> InMemoryRevocationStore:
    """Fresh in-memory revocation store."""
    return InMemoryRevocationStore()


@pytest.fixture()
def service(memory_store: InMemoryRevocationStore, token_cfg: TokenServiceConfig) -> TokenService:
    """TokenService wired to the in-memory store."""
    return TokenService(store=memory_store, cfg=token_cfg)


@pytest.fixture()
def fake_redis() -> fakeredis.FakeRedis:
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture()
def redis_store(fake_redis: fakeredis.FakeRedis) -> RedisRevocationStore:
    """Provide a RedisRevocationStore backed by FakeRedis."""
    return RedisRevocationStore(r=fake_redis)


@pytest.fixture()
def directory(user: UserSnapshot) -> InMemoryUserDirectory:
    """User directory knowing the default ``user`` fixture."""
    return InMemoryUserDirectory([user])


@pytest.fixture()
def app(
    rsa_keys: KeyPair,
    redis_store: RedisRevocationStore,
    directory: InMemoryUserDirectory,
) -> Generator[Flask, None, None]:
    """Create a Flask application configured for testing."""

    class TestConfig(TestingConfig):
        PRIVATE_KEY = rsa_keys.private_pem
        PUBLIC_KEY = rsa_keys.public_pem
        REFRESH_SECRET = REFRESH_SECRET
        ID_TOKEN_EXPIRATION = 15 * 60
        REFRESH_TOKEN_EXPIRATION = 3 * 24 * 60 * 60
        LOG_LEVEL = "WARNING"

    application = create_app(
        TestConfig,
        revocation_store=redis_store,
        user_directory=directory,
    )
    with application.app_context():
        yield application


@pytest.fixture()
def client(app: Flask):
    """Flask test client."""
    return app.test_client()
