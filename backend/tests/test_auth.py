"""
Authentication, session and membership tests.

Covers password rules, bcrypt verification, session token lifecycle and the
organization/role resolution every action goes through.
"""

from datetime import timedelta

import pytest

from tradedesk.constants import WRITE_ROLES
from tradedesk.errors import Conflict, NotFound, Unauthorized, ValidationError
from tradedesk.models import Member, SessionToken
from tradedesk.services import auth_service, session_service
from tradedesk.services.membership_service import (
    add_member,
    get_business_auth_context,
    list_memberships,
)
from tradedesk.time_utils import utcnow

from conftest import PASSWORD, make_member


class TestPasswords:
    @pytest.mark.parametrize("weak", ["Sh0rt!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, weak):
        with pytest.raises(auth_service.PasswordValidationError):
            auth_service.validate_password_strength(weak)

    def test_hash_and_verify(self, app):
        hashed = auth_service.hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed) is True
        assert auth_service.verify_password("Wrong123!", hashed) is False

    def test_malformed_hash_is_a_failed_check(self, app):
        assert auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestUsers:
    def test_create_and_authenticate_by_username_or_email(self, db_session):
        user = auth_service.create_user("alice", "alice@example.com", PASSWORD, name="Alice")

        assert auth_service.authenticate("alice", PASSWORD).id == user.id
        assert auth_service.authenticate("alice@example.com", PASSWORD).id == user.id
        assert user.last_login_at is not None

    def test_wrong_password(self, db_session):
        auth_service.create_user("alice", "alice@example.com", PASSWORD)
        assert auth_service.authenticate("alice", "Wrong123!") is None

    def test_inactive_user_cannot_authenticate(self, db_session):
        user = auth_service.create_user("alice", "alice@example.com", PASSWORD)
        user.is_active = False
        db_session.commit()
        assert auth_service.authenticate("alice", PASSWORD) is None

    def test_duplicate_username(self, db_session):
        auth_service.create_user("alice", "alice@example.com", PASSWORD)
        with pytest.raises(ValueError):
            auth_service.create_user("alice", "other@example.com", PASSWORD)


class TestSessions:
    def test_token_is_stored_hashed(self, db_session, staff_a):
        session, token = session_service.create_session(staff_a.user_id)

        assert len(token) == 64
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token
        assert session_service.validate_session(token).id == staff_a.user_id

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("0" * 64) is None

    def test_revoke(self, db_session, staff_a):
        _, token = session_service.create_session(staff_a.user_id)

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_idle_session_is_revoked(self, db_session, staff_a):
        session, token = session_service.create_session(staff_a.user_id)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert db_session.get(SessionToken, session.id).revoked_reason == "Idle timeout"

    def test_expired_session(self, db_session, staff_a):
        session, token = session_service.create_session(staff_a.user_id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_deactivated_user_loses_session(self, db_session, staff_a):
        _, token = session_service.create_session(staff_a.user_id)
        staff_a.user.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None


class TestAuthContext:
    def test_member_resolves_context(self, db_session, org_a, staff_a):
        ctx = get_business_auth_context(org_a.id, staff_a.user_id, WRITE_ROLES)
        assert ctx.to_dict() == {
            "user_id": staff_a.user_id,
            "member_id": staff_a.id,
            "org_id": org_a.id,
            "role": "STAFF",
        }

    def test_non_member_is_unauthorized(self, db_session, org_b, staff_a):
        with pytest.raises(Unauthorized):
            get_business_auth_context(org_b.id, staff_a.user_id)

    def test_missing_user(self, db_session, org_a):
        with pytest.raises(Unauthorized):
            get_business_auth_context(org_a.id, None)

    def test_viewer_lacks_write_role(self, db_session, org_a, viewer_a):
        assert get_business_auth_context(org_a.id, viewer_a.user_id).role == "VIEWER"
        with pytest.raises(Unauthorized):
            get_business_auth_context(org_a.id, viewer_a.user_id, WRITE_ROLES)

    def test_owner_satisfies_admin(self, db_session, org_a):
        owner = make_member(db_session, org_a, "owner_a", "OWNER")
        assert get_business_auth_context(org_a.id, owner.user_id, ("ADMIN",)).role == "OWNER"

    def test_inactive_org_rejects_everyone(self, db_session, org_a, admin_a):
        org_a.is_active = False
        db_session.commit()
        with pytest.raises(Unauthorized):
            get_business_auth_context(org_a.id, admin_a.user_id)

    def test_inactive_membership(self, db_session, org_a, staff_a):
        staff_a.is_active = False
        db_session.commit()
        with pytest.raises(Unauthorized):
            get_business_auth_context(org_a.id, staff_a.user_id)


class TestMemberships:
    def test_add_member(self, db_session, org_a, org_b, staff_a):
        member = add_member(org_b.id, staff_a.user_id, "viewer")

        assert member.role == "VIEWER"
        assert [m.org_id for m in list_memberships(staff_a.user_id)] == [org_a.id, org_b.id]

    def test_invalid_role(self, db_session, org_b, staff_a):
        with pytest.raises(ValidationError):
            add_member(org_b.id, staff_a.user_id, "SUPERUSER")

    def test_unknown_org(self, db_session, staff_a):
        with pytest.raises(NotFound):
            add_member(9999, staff_a.user_id, "STAFF")

    def test_already_member(self, db_session, org_a, staff_a):
        with pytest.raises(Conflict):
            add_member(org_a.id, staff_a.user_id, "ADMIN")

    def test_lapsed_membership_is_reactivated(self, db_session, org_a, staff_a):
        staff_a.is_active = False
        db_session.commit()

        member = add_member(org_a.id, staff_a.user_id, "ADMIN")

        assert member.id == staff_a.id
        assert member.is_active is True
        assert db_session.query(Member).filter_by(org_id=org_a.id, user_id=staff_a.user_id).count() == 1
