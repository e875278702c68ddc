"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from account_tokens.api.deps import json_response
from account_tokens.core.extensions import REDIS_CLIENT_KEY

bp = Blueprint("health", __name__)


@bp.get("/health")
def healthcheck():
    """Return application and revocation store health information."""

    client = current_app.extensions.get(REDIS_CLIENT_KEY)
    if client is None:
        store_status = "unconfigured"
    else:
        store_status = "ok"
        try:
            client.ping()
        except RedisError:
            current_app.logger.exception("healthcheck.redis_error")
            store_status = "fail"
    version = current_app.config.get("APP_VERSION", "dev")
    status = 503 if store_status == "fail" else 200
    payload = {
        "status": "ok" if status == 200 else "degraded",
        "redis": store_status,
        "version": version,
    }
    return json_response(payload, status=status)
