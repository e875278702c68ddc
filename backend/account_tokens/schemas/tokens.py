"""Token-related Marshmallow schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from marshmallow import EXCLUDE, Schema, fields, post_load, validate

if TYPE_CHECKING:
    from account_tokens.services.tokens.dto import UserSnapshot


class UserSnapshotSchema(Schema):
    """
    Wire form of :class:`UserSnapshot` (the ``user`` claim of identity tokens).

    Unknown keys are dropped on load, so credential fields smuggled into a
    payload never reach a snapshot.
    """

    class Meta:
        unknown = EXCLUDE

    id = fields.String(required=True, data_key="uid", validate=validate.Length(min=1))
    email = fields.String(load_default="")
    username = fields.String(load_default="")
    image_url = fields.String(load_default="", data_key="imageURL")
    website = fields.String(load_default="")

    @post_load
    def make_snapshot(self, data: dict[str, Any], **kwargs: Any) -> UserSnapshot:
        # services.tokens.codec imports this module
        from account_tokens.services.tokens.dto import UserSnapshot

        return UserSnapshot(**data)


class TokensRequestSchema(Schema):
    """Input payload for rotating a refresh token."""

    refresh_token = fields.String(
        required=True, data_key="refreshToken", validate=validate.Length(min=1)
    )


class TokenPairSchema(Schema):
    """Response payload containing an identity/refresh token pair."""

    id_token = fields.String(attribute="id_token.signed_string", data_key="idToken")
    refresh_token = fields.String(
        attribute="refresh_token.signed_string", data_key="refreshToken"
    )
