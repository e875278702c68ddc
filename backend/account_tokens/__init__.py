"""Expose the application factory at package level.

Provide convenient access to :func:`account_tokens.factory.create_app` so
callers can ``from account_tokens import create_app``.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
