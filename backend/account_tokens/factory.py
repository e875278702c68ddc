"""Application factory wiring extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from account_tokens.core.config import BaseConfig, get_config
from account_tokens.core.logger import configure_logging, init_app as init_logging
from account_tokens.services._shared.ports import RevocationStore, UserDirectory


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    revocation_store: RevocationStore | None = None,
    user_directory: UserDirectory | None = None,
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object/class or import path; defaults to ``APP_ENV``.
    :param revocation_store: Store replacing the Redis one built from ``REDIS_URL``.
    :param user_directory: Profile lookup used when rotating tokens.
    """

    app = Flask(__name__)

    app.config.from_object(get_config() if config is None else config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from account_tokens.core import extensions

    extensions.init_app(app, revocation_store=revocation_store, user_directory=user_directory)

    init_logging(app)

    from account_tokens.api import init_app as init_api

    init_api(app)

    from account_tokens.core import errors

    errors.init_app(app)

    return app
