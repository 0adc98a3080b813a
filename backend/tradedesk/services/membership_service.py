"""
Membership Service: Organization Access and Role Resolution

WHY: Every write in tradedesk is performed *as a member of an organization*.
A valid session only proves who the user is; this module decides whether
that user may act inside the organization named by the request, and with
which role.

SECURITY INVARIANTS:
1. A user reaches an organization only through an active Member row
2. Inactive organizations reject every request
3. Cross-tenant attempts surface as Unauthorized, never as NotFound, so the
   existence of another tenant's organization is not revealed
4. OWNER satisfies any ADMIN requirement

USAGE:
    ctx = get_business_auth_context(org_id, g.current_user.id, WRITE_ROLES)
    ctx.member_id  # attribute orders/stock movements to this member
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..constants import MEMBER_ROLES
from ..errors import Conflict, NotFound, Unauthorized, ValidationError
from ..extensions import db
from ..models import Member, Organization, User


@dataclass(frozen=True)
class AuthContext:
    """Resolved identity for one request inside one organization."""

    user_id: int
    member_id: int
    org_id: int
    role: str

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "member_id": self.member_id,
            "org_id": self.org_id,
            "role": self.role,
        }


def _effective_roles(required_roles: Iterable[str]) -> set[str]:
    roles = set(required_roles)
    if "ADMIN" in roles:
        roles.add("OWNER")
    return roles


def validate_org_active(org_id: int) -> Organization:
    """Raises Unauthorized if the organization is missing or deactivated."""
    org = db.session.get(Organization, org_id)
    if not org or not org.is_active:
        raise Unauthorized("Organization is not available.")
    return org


def get_business_auth_context(
    org_id: int,
    user_id: int | None,
    required_roles: Iterable[str] | None = None,
) -> AuthContext:
    """
    Resolve (organization, user) -> AuthContext or raise Unauthorized.

    required_roles=None means any active member may proceed (read access).
    """
    if not user_id:
        raise Unauthorized("Authentication required.")

    validate_org_active(org_id)

    member = (
        db.session.query(Member)
        .join(User, User.id == Member.user_id)
        .filter(
            Member.org_id == org_id,
            Member.user_id == user_id,
            Member.is_active.is_(True),
            User.is_active.is_(True),
        )
        .first()
    )
    if not member:
        current_app.logger.warning(
            "Membership check failed: user_id=%s org_id=%s", user_id, org_id
        )
        raise Unauthorized("You are not a member of this organization.")

    if required_roles is not None and member.role not in _effective_roles(required_roles):
        current_app.logger.info(
            "Role check failed: user_id=%s org_id=%s role=%s required=%s",
            user_id, org_id, member.role, sorted(required_roles),
        )
        raise Unauthorized("You do not have permission to perform this action.")

    return AuthContext(
        user_id=user_id,
        member_id=member.id,
        org_id=org_id,
        role=member.role,
    )


def add_member(org_id: int, user_id: int, role: str = "STAFF") -> Member:
    """Grant a user a role in an organization. Re-activates a lapsed membership."""
    role = (role or "").upper()
    if role not in MEMBER_ROLES:
        raise ValidationError(
            "Invalid role.",
            details={"fields": {"role": [f"Must be one of {', '.join(MEMBER_ROLES)}"]}},
        )

    if not db.session.get(Organization, org_id):
        raise NotFound("organization")
    if not db.session.get(User, user_id):
        raise NotFound("user")

    member = db.session.query(Member).filter_by(org_id=org_id, user_id=user_id).first()
    if member and member.is_active:
        raise Conflict("User is already a member of this organization.")

    if member:
        member.is_active = True
        member.role = role
    else:
        member = Member(org_id=org_id, user_id=user_id, role=role)
        db.session.add(member)

    db.session.commit()
    return member


def list_memberships(user_id: int) -> list[Member]:
    return (
        db.session.query(Member)
        .filter_by(user_id=user_id, is_active=True)
        .order_by(Member.org_id.asc())
        .all()
    )
