# Overview: Login, logout and current-user endpoints.

"""
Auth routes. Accounts are provisioned with `flask users create`; there is
no self-registration endpoint.
"""

from flask import Blueprint, g, request

from .. import actions
from ..actions import run_action
from ..decorators import require_auth
from ..services import session_service
from .common import json_body, respond


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """Body: username (or email), password. Returns a bearer token plus memberships."""
    return respond(run_action(
        actions.login,
        json_body(),
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    ))


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return respond(actions.ActionResult.ok({"message": "Logged out"}))


@auth_bp.get("/me")
@require_auth
def me_route():
    return respond(run_action(actions.whoami, g.current_user))
