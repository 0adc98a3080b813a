# Overview: Pytest coverage for order status changes and the opt-in lifecycle behaviours.

from decimal import Decimal

import pytest

from tradedesk import actions
from tradedesk.errors import NotFound, PreconditionFailed
from tradedesk.models import Delivery, LedgerEvent, StockTransaction
from tradedesk.services import order_service
from tradedesk.services.stock_service import get_available_quantity
from tradedesk.validation import validate_create_order, validate_update_order_status


@pytest.fixture
def order(db_session, staff_ctx, customer_a, product_p1, service_s1):
    cmd = validate_create_order({
        "customer_id": customer_a.id,
        "items": [
            {"product_id": product_p1.id, "quantity": 2},
            {"product_id": service_s1.id, "quantity": 1},
        ],
    })
    return order_service.create_order(staff_ctx, cmd)


def _set_status(ctx, order_id, **payload):
    return order_service.update_order_status(ctx, validate_update_order_status(order_id, payload))


class TestDefaultTransitions:
    def test_any_status_may_follow_any_other(self, db_session, staff_ctx, order):
        cancelled = _set_status(staff_ctx, order["id"], status="CANCELLED")
        assert cancelled["status"] == "CANCELLED"

        reopened = _set_status(staff_ctx, order["id"], status="PENDING")
        assert reopened["status"] == "PENDING"

    def test_unknown_order(self, db_session, staff_ctx):
        with pytest.raises(NotFound) as exc_info:
            _set_status(staff_ctx, 9999, status="PAID")
        assert exc_info.value.message == "Order not found."

    def test_order_of_other_org_is_not_found(self, db_session, ctx_b, order):
        with pytest.raises(NotFound):
            _set_status(ctx_b, order["id"], status="PAID")

    def test_tracking_number_creates_delivery(self, db_session, staff_ctx, order):
        updated = _set_status(staff_ctx, order["id"], status="SHIPPED", tracking_number="TRACK-1")

        assert updated["delivery"]["tracking_number"] == "TRACK-1"
        assert updated["delivery"]["type"] == "DELIVERY"
        assert updated["delivery"]["status"] == "IN_TRANSIT"
        assert db_session.query(Delivery).count() == 1

    def test_payment_reference_updates_existing_delivery(self, db_session, staff_ctx, customer_a, product_p1):
        cmd = validate_create_order({
            "customer_id": customer_a.id,
            "items": [{"product_id": product_p1.id, "quantity": 1}],
            "delivery_type": "IN_STORE",
            "payment_method": "CASH",
        })
        created = order_service.create_order(staff_ctx, cmd)

        updated = _set_status(staff_ctx, created["id"], status="PAID", payment_reference="RCPT-9")

        assert updated["delivery"]["type"] == "IN_STORE"
        assert updated["delivery"]["payment_reference"] == "RCPT-9"
        assert updated["delivery"]["status"] == "PENDING"
        assert db_session.query(Delivery).count() == 1

    def test_delivery_status_follows_fulfilment(self, db_session, staff_ctx, customer_a, product_p1):
        cmd = validate_create_order({
            "customer_id": customer_a.id,
            "items": [{"product_id": product_p1.id, "quantity": 1}],
            "delivery_type": "DELIVERY",
        })
        created = order_service.create_order(staff_ctx, cmd)
        assert created["delivery"]["status"] == "PENDING"

        assert _set_status(staff_ctx, created["id"], status="PROCESSING")["delivery"]["status"] == "PREPARING"
        assert _set_status(staff_ctx, created["id"], status="DELIVERED")["delivery"]["status"] == "DELIVERED"
        # PAID is not a fulfilment step
        assert _set_status(staff_ctx, created["id"], status="PAID")["delivery"]["status"] == "DELIVERED"

    def test_cancel_does_not_touch_stock_by_default(self, db_session, staff_ctx, order):
        _set_status(staff_ctx, order["id"], status="CANCELLED")
        returns = db_session.query(StockTransaction).filter_by(type="RETURN").count()
        assert returns == 0

    def test_status_change_is_audited(self, db_session, staff_ctx, order):
        _set_status(staff_ctx, order["id"], status="PAID")
        event = db_session.query(LedgerEvent).filter_by(event_type="order.status_changed").one()
        assert '"from": "PENDING"' in event.payload
        assert '"to": "PAID"' in event.payload


class TestStrictTransitions:
    @pytest.fixture(autouse=True)
    def strict(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "ORDER_STRICT_STATUS_TRANSITIONS", True)

    def test_allowed_move(self, db_session, staff_ctx, order):
        assert _set_status(staff_ctx, order["id"], status="PAID")["status"] == "PAID"

    def test_cancelled_cannot_reopen(self, db_session, staff_ctx, order):
        _set_status(staff_ctx, order["id"], status="CANCELLED")

        with pytest.raises(PreconditionFailed) as exc_info:
            _set_status(staff_ctx, order["id"], status="PENDING")

        assert exc_info.value.details == {"from": "CANCELLED", "to": "PENDING"}
        assert order_service.get_order(staff_ctx.org_id, order["id"])["status"] == "CANCELLED"

    def test_same_status_is_a_no_op_move(self, db_session, staff_ctx, order):
        updated = _set_status(staff_ctx, order["id"], status="PENDING", tracking_number="T-2")
        assert updated["delivery"]["tracking_number"] == "T-2"


class TestCancelReturnsStock:
    @pytest.fixture(autouse=True)
    def restock(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "ORDER_CANCEL_RETURNS_STOCK", True)

    def test_first_cancel_writes_returns_for_physical_lines(self, db_session, staff_ctx, order, product_p1):
        _set_status(staff_ctx, order["id"], status="CANCELLED")

        returns = db_session.query(StockTransaction).filter_by(type="RETURN", related_order_id=order["id"]).all()
        assert len(returns) == 1
        assert returns[0].product_id == product_p1.id
        assert returns[0].quantity_change == Decimal("2")

    def test_returns_written_only_once(self, db_session, staff_ctx, order):
        _set_status(staff_ctx, order["id"], status="CANCELLED")
        _set_status(staff_ctx, order["id"], status="PENDING")
        _set_status(staff_ctx, order["id"], status="CANCELLED")

        returns = db_session.query(StockTransaction).filter_by(type="RETURN", related_order_id=order["id"]).count()
        assert returns == 1


class TestLedgerAvailability:
    @pytest.fixture(autouse=True)
    def ledger_mode(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "STOCK_AVAILABILITY_MODE", "LEDGER")

    def test_sales_reduce_availability(self, db_session, staff_ctx, order, product_p1):
        assert get_available_quantity(staff_ctx.org_id, product_p1.id) == Decimal("3")

    def test_second_order_blocked_by_earlier_sales(self, db_session, staff_ctx, customer_a, order, product_p1):
        from tradedesk.errors import InsufficientStock

        cmd = validate_create_order({"customer_id": customer_a.id, "items": [{"product_id": product_p1.id, "quantity": 4}]})
        with pytest.raises(InsufficientStock):
            order_service.create_order(staff_ctx, cmd)

    def test_cancel_restock_restores_availability(self, db_session, app, monkeypatch, staff_ctx, order, product_p1):
        monkeypatch.setitem(app.config, "ORDER_CANCEL_RETURNS_STOCK", True)
        _set_status(staff_ctx, order["id"], status="CANCELLED")
        assert get_available_quantity(staff_ctx.org_id, product_p1.id) == Decimal("5")


class TestOrderReads:
    def test_get_order_includes_customer_and_items(self, db_session, staff_ctx, order, customer_a):
        data = order_service.get_order(staff_ctx.org_id, order["id"])
        assert data["customer"]["customer_code"] == "C1"
        assert len(data["items"]) == 2

    def test_list_orders_newest_first_and_filtered(self, db_session, org_a, staff_ctx, customer_a, product_p1):
        from tradedesk.models import Customer

        other = Customer(org_id=org_a.id, customer_code="C2", name="Customer Two")
        db_session.add(other)
        db_session.commit()

        def place(customer):
            cmd = validate_create_order({"customer_id": customer.id, "items": [{"product_id": product_p1.id, "quantity": 1}]})
            return order_service.create_order(staff_ctx, cmd)

        first = place(customer_a)
        second = place(other)
        third = place(customer_a)

        all_ids = [o["id"] for o in order_service.list_orders(org_a.id)]
        assert all_ids == [third["id"], second["id"], first["id"]]

        mine = [o["id"] for o in order_service.list_orders(org_a.id, customer_id=customer_a.id)]
        assert mine == [third["id"], first["id"]]

    def test_list_orders_is_tenant_scoped(self, db_session, org_b, order):
        assert order_service.list_orders(org_b.id) == []

    def test_history_lists_audit_events_newest_first(self, db_session, staff_ctx, ctx_b, order):
        _set_status(staff_ctx, order["id"], status="PAID")

        history = order_service.get_order_history(staff_ctx.org_id, order["id"])
        assert [e["event_type"] for e in history] == ["order.status_changed", "order.created"]

        with pytest.raises(NotFound):
            order_service.get_order_history(ctx_b.org_id, order["id"])

    def test_list_orders_filtered_by_status(self, db_session, staff_ctx, customer_a, product_p1):
        def place():
            cmd = validate_create_order({"customer_id": customer_a.id, "items": [{"product_id": product_p1.id, "quantity": 1}]})
            return order_service.create_order(staff_ctx, cmd)

        paid = place()
        place()
        _set_status(staff_ctx, paid["id"], status="PAID")

        assert [o["id"] for o in order_service.list_orders(staff_ctx.org_id, status="PAID")] == [paid["id"]]
        assert len(order_service.list_orders(staff_ctx.org_id, status="PENDING")) == 1
        assert order_service.list_orders(staff_ctx.org_id, status="SHIPPED") == []

    def test_list_action_validates_status(self, db_session, staff_a, order):
        ok = actions.run_action(actions.list_orders, staff_a.org_id, staff_a.user_id, {"status": "pending"})
        bad = actions.run_action(actions.list_orders, staff_a.org_id, staff_a.user_id, {"status": "LOST"})

        assert [o["id"] for o in ok.data] == [order["id"]]
        assert bad.success is False
        assert bad.code == "VALIDATION_ERROR"
