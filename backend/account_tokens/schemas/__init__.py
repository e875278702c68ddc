"""Convenience exports for application schemas."""

from __future__ import annotations

from .tokens import TokenPairSchema, TokensRequestSchema, UserSnapshotSchema

__all__ = [
    "TokenPairSchema",
    "TokensRequestSchema",
    "UserSnapshotSchema",
]
