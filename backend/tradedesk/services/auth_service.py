# Overview: User accounts and password checks.

"""
Authentication Service

Users are global identities: one login, any number of organizations.
Which organizations a user may act in, and with which role, is decided by
membership_service; this module only answers "is this really alice?".

Passwords are stored as bcrypt hashes. The cost factor comes from the
BCRYPT_ROUNDS setting (12 in production, lowered in tests).
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow


class PasswordValidationError(Exception):
    """Password does not meet the strength rules."""


MIN_PASSWORD_LENGTH = 8

PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a special character"),
)


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, label in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password must contain {label}")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check. A corrupt stored hash is a failed login, not a 500."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _lookup(login: str):
    return db.session.query(User).filter(
        db.or_(User.username == login, User.email == login.lower())
    )


def create_user(username: str, email: str, password: str, name: str | None = None) -> User:
    """
    Raises:
        ValueError: username or email already registered
        PasswordValidationError: weak password
    """
    email = email.strip().lower()
    taken = db.session.query(User.id).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if taken:
        raise ValueError("Username or email already exists")

    user = User(username=username, email=email, name=name, password_hash=hash_password(password))
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User created: id=%s username=%s", user.id, user.username)
    return user


def authenticate(login: str, password: str) -> User | None:
    """Username or email plus password -> active User, else None. Stamps last_login_at."""
    user = _lookup(login).filter(User.is_active.is_(True)).first()
    if user is None or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
