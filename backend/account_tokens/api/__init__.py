"""HTTP delivery layer: mounts the versioned token blueprints."""

from __future__ import annotations

from flask import Flask


def init_app(app: Flask) -> None:
    """Mount every v1 blueprint under ``<API_BASE_PREFIX>/v1``."""

    from account_tokens.api.v1 import API_VERSION, BLUEPRINTS

    prefix = f"{app.config.get('API_BASE_PREFIX', '/api').rstrip('/')}/{API_VERSION}"
    for bp in BLUEPRINTS:
        app.register_blueprint(bp, url_prefix=prefix)


__all__ = ["init_app"]
