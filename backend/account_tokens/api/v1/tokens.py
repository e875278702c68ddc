"""Token endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from account_tokens.api.deps import auth_user, json_response, request_context
from account_tokens.core.errors import NotFound
from account_tokens.core.extensions import get_token_service, get_user_directory
from account_tokens.schemas import TokenPairSchema, TokensRequestSchema, UserSnapshotSchema
from account_tokens.services import ServiceContext, UserSnapshot

bp = Blueprint("tokens", __name__)

tokens_request_schema = TokensRequestSchema()
token_pair_schema = TokenPairSchema()
user_schema = UserSnapshotSchema()


@bp.post("/tokens")
def tokens():
    """Rotate a refresh token and return a fresh token pair."""

    data = tokens_request_schema.load(request.get_json(silent=True) or {})
    ctx = request_context()
    service = get_token_service()

    claims = service.validate_refresh(ctx, data["refresh_token"])

    # Re-read the profile so the new identity token carries current data
    user = get_user_directory().get(claims.user_id)
    if user is None:
        raise NotFound(f"User not found: {claims.user_id}")

    pair = service.new_pair(ctx, user, claims.token_id)
    return json_response({"tokens": token_pair_schema.dump(pair)})


@bp.post("/signout")
@auth_user
def signout(*, ctx: ServiceContext, user: UserSnapshot):
    """Revoke every refresh token of the authenticated user."""

    get_token_service().sign_out(ctx, user.id)
    return json_response({"message": "the user signed out successfully!"})


@bp.get("/me")
@auth_user
def me(*, ctx: ServiceContext, user: UserSnapshot):
    """Return the user carried by the presented identity token."""

    return json_response({"user": user_schema.dump(user)})
