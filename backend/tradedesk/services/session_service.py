# Overview: Bearer-token sessions for API clients.

"""
Session Service

A login hands the client a random bearer token. Only its SHA-256 digest is
persisted, so a leaked database cannot be replayed against the API.

A session names a user, never an organization: the organization comes from
the request URL and is checked per request by membership_service.

Lifetimes:
- absolute: 24h from login (SESSION_ABSOLUTE_TIMEOUT)
- idle: 2h since the last authenticated request (SESSION_IDLE_TIMEOUT)
An idle session, or one whose user was deactivated, is revoked on sight.
"""

import hashlib
import secrets
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy; a slow KDF buys nothing here.
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _close(record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    db.session.commit()


def create_session(user_id: int, user_agent: str | None = None, ip_address: str | None = None):
    """
    Open a session for an active user.

    Returns (SessionToken, plaintext_token). The plaintext is shown to the
    client once and cannot be recovered afterwards.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User is not active")

    token = generate_token()
    opened = utcnow()
    record = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=opened,
        last_used_at=opened,
        expires_at=opened + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()
    return record, token


def validate_session(token: str) -> User | None:
    """Resolve a bearer token to its user and refresh the idle clock; None when unusable."""
    record = _live_session(token)
    if record is None:
        return None

    now = utcnow()
    if now >= record.expires_at:
        return None
    if now - record.last_used_at > SESSION_IDLE_TIMEOUT:
        _close(record, "Idle timeout")
        return None
    if record.user is None or not record.user.is_active:
        _close(record, "User account deactivated")
        return None

    record.last_used_at = now
    db.session.commit()
    return record.user


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    record = _live_session(token)
    if record is None:
        return False
    _close(record, reason)
    return True
