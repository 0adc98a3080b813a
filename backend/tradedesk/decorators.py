# Overview: Request and role decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .errors import ActionError, Unauthenticated, Unauthorized
from .services import session_service
from .services.membership_service import get_business_auth_context


def _error_response(exc: ActionError):
    return jsonify({"success": False, "error": exc.message, "code": exc.code}), exc.http_status


def _bearer_token() -> str | None:
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme != "Bearer":
        return None
    return token.strip() or None


def require_auth(f):
    """
    Resolve `Authorization: Bearer <token>` to a user.

    On success sets g.current_user and g.session_token (kept for logout).
    Anything else, including an idle or revoked session, is a 401.
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return _error_response(Unauthenticated("Authentication required"))

        user = session_service.validate_session(token)
        if user is None:
            return _error_response(Unauthenticated("Invalid or expired token"))

        g.current_user = user
        g.session_token = token
        return f(*args, **kwargs)

    return wrapper


def require_role(*roles: str):
    """
    Gate a route under /api/orgs/<org_id>/ on membership of that organization.

    With no roles any active member passes (read access). Stores the
    AuthContext on g.auth. Stack it below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if getattr(g, "current_user", None) is None:
                return _error_response(Unauthenticated("Authentication required"))
            try:
                g.auth = get_business_auth_context(kwargs.get("org_id"), g.current_user.id, roles or None)
            except Unauthorized as exc:
                return _error_response(exc)
            return f(*args, **kwargs)

        return wrapper
    return decorator
