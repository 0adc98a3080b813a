# Overview: Pytest coverage for the flask CLI command groups.

from decimal import Decimal

import pytest

from tradedesk.models import Member, Organization, User
from tradedesk.services import order_service
from tradedesk.validation import validate_create_order, validate_update_order_status

from conftest import PASSWORD


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestBootstrap:
    def test_init_creates_org_owner_and_membership(self, runner, db_session):
        result = runner.invoke(args=[
            "system", "init", "--org", "Acme Corp", "--code", "ACME",
            "--username", "owner", "--email", "owner@acme.test", "--password", PASSWORD,
        ])

        assert result.exit_code == 0, result.output
        org = db_session.query(Organization).filter_by(code="ACME").one()
        user = db_session.query(User).filter_by(username="owner").one()
        member = db_session.query(Member).filter_by(org_id=org.id, user_id=user.id).one()
        assert member.role == "OWNER"

    def test_init_is_repeatable(self, runner, db_session):
        args = [
            "system", "init", "--org", "Acme Corp", "--code", "ACME",
            "--username", "owner", "--email", "owner@acme.test", "--password", PASSWORD,
        ]
        runner.invoke(args=args)
        result = runner.invoke(args=args)

        assert result.exit_code == 0
        assert "SKIP" in result.output
        assert db_session.query(Member).count() == 1


class TestOrgsAndMembers:
    def test_create_org_rejects_duplicate_code(self, runner, db_session, org_a):
        result = runner.invoke(args=["orgs", "create", "--name", "Copy", "--code", "ACME"])
        assert result.exit_code == 1

    def test_deactivate(self, runner, db_session, org_a):
        result = runner.invoke(args=["orgs", "deactivate", "--org-id", str(org_a.id)])

        assert result.exit_code == 0
        db_session.refresh(org_a)
        assert org_a.is_active is False

    def test_weak_password_rejected(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create", "--username", "bob", "--email", "bob@example.com", "--password", "weak",
        ])
        assert result.exit_code == 1
        assert db_session.query(User).filter_by(username="bob").count() == 0

    def test_add_member(self, runner, db_session, org_b, staff_a):
        result = runner.invoke(args=["members", "add", "--org-id", str(org_b.id), "--username", "staff_a", "--role", "viewer"])

        assert result.exit_code == 0, result.output
        assert db_session.query(Member).filter_by(org_id=org_b.id, user_id=staff_a.user_id).one().role == "VIEWER"

    def test_add_member_unknown_user(self, runner, db_session, org_a):
        result = runner.invoke(args=["members", "add", "--org-id", str(org_a.id), "--username", "ghost"])
        assert result.exit_code == 1


class TestInspection:
    def test_stock_show(self, runner, db_session, product_p1):
        result = runner.invoke(args=["stock", "show", "--org-id", str(product_p1.org_id), "--product-id", str(product_p1.id)])

        assert result.exit_code == 0, result.output
        assert "Available: 5.000 pcs (BATCHES mode)" in result.output

    def test_stock_show_unknown_product(self, runner, db_session, org_a):
        result = runner.invoke(args=["stock", "show", "--org-id", str(org_a.id), "--product-id", "9999"])
        assert result.exit_code == 1

    def test_orders_list_empty(self, runner, db_session, org_a):
        result = runner.invoke(args=["orders", "list", "--org-id", str(org_a.id)])
        assert "No orders." in result.output

    def test_orders_list_filters_by_status(self, runner, db_session, staff_ctx, customer_a, product_p1):
        payload = {"customer_id": customer_a.id, "items": [{"product_id": product_p1.id, "quantity": 1}]}
        paid = order_service.create_order(staff_ctx, validate_create_order(payload))
        pending = order_service.create_order(staff_ctx, validate_create_order(payload))
        order_service.update_order_status(staff_ctx, validate_update_order_status(paid["id"], {"status": "PAID"}))

        result = runner.invoke(args=["orders", "list", "--org-id", str(staff_ctx.org_id), "--status", "paid"])

        assert result.exit_code == 0, result.output
        assert paid["order_number"] in result.output
        assert pending["order_number"] not in result.output

    def test_orders_list_rejects_unknown_status(self, runner, db_session, org_a):
        result = runner.invoke(args=["orders", "list", "--org-id", str(org_a.id), "--status", "LOST"])
        assert result.exit_code == 2

    def test_stock_low(self, runner, db_session, org_a, product_p1):
        empty = runner.invoke(args=["stock", "low", "--org-id", str(org_a.id)])
        assert "No products below their reorder point." in empty.output

        product_p1.reorder_point = Decimal("6")
        db_session.commit()
        result = runner.invoke(args=["stock", "low", "--org-id", str(org_a.id)])

        assert result.exit_code == 0, result.output
        assert "Widget" in result.output
        assert "6.000" in result.output
