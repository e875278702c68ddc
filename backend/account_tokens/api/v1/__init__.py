"""API v1: health probe and token endpoints."""

from __future__ import annotations

from flask import Blueprint

from .health import bp as health_bp
from .tokens import bp as tokens_bp

API_VERSION = "v1"

# /health, then /tokens, /signout and /me
BLUEPRINTS: tuple[Blueprint, ...] = (health_bp, tokens_bp)
