# Overview: Pytest coverage for categories and products, through the services and the action boundary.

import pytest

from tradedesk import actions
from tradedesk.errors import Conflict, NotFound, ValidationError
from tradedesk.models import LedgerEvent
from tradedesk.services import catalog_service
from tradedesk.validation import validate_category, validate_product

from conftest import make_product


def _product(ctx, **payload):
    payload.setdefault("type", "PHYSICAL")
    payload.setdefault("unit", "pcs")
    payload.setdefault("price_cents", 1500)
    return catalog_service.create_product(ctx, validate_product(payload))


class TestCategories:
    def test_create_and_list_sorted_by_name(self, db_session, staff_ctx):
        catalog_service.create_category(staff_ctx, validate_category({"name": "Tools"}))
        catalog_service.create_category(staff_ctx, validate_category({"name": "Adhesives"}))

        names = [c["name"] for c in catalog_service.list_categories(staff_ctx.org_id)]
        assert names == ["Adhesives", "Tools"]

    def test_name_is_unique_case_insensitively(self, db_session, staff_ctx):
        catalog_service.create_category(staff_ctx, validate_category({"name": "Tools"}))
        with pytest.raises(Conflict):
            catalog_service.create_category(staff_ctx, validate_category({"name": "tools"}))

    def test_same_name_allowed_in_other_org(self, db_session, staff_ctx, ctx_b):
        catalog_service.create_category(staff_ctx, validate_category({"name": "Tools"}))
        created = catalog_service.create_category(ctx_b, validate_category({"name": "Tools"}))
        assert created["org_id"] == ctx_b.org_id

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_category({"name": "x"})
        assert exc_info.value.details["fields"]["name"] == ["Category name must be at least 2 characters"]

    def test_update(self, db_session, staff_ctx):
        category = catalog_service.create_category(staff_ctx, validate_category({"name": "Tools"}))
        updated = catalog_service.update_category(
            staff_ctx, category["id"], validate_category({"description": "Hand tools"}, partial=True)
        )
        assert updated["name"] == "Tools"
        assert updated["description"] == "Hand tools"

    def test_delete_unused(self, db_session, admin_ctx):
        category = catalog_service.create_category(admin_ctx, validate_category({"name": "Tools"}))
        assert catalog_service.delete_category(admin_ctx, category["id"]) == {"id": category["id"], "deleted": True}
        assert catalog_service.list_categories(admin_ctx.org_id) == []

    def test_delete_in_use_conflicts(self, db_session, admin_ctx):
        category = catalog_service.create_category(admin_ctx, validate_category({"name": "Tools"}))
        _product(admin_ctx, name="Hammer", category_id=category["id"])

        with pytest.raises(Conflict) as exc_info:
            catalog_service.delete_category(admin_ctx, category["id"])
        assert exc_info.value.details == {"product_count": 1}

    def test_foreign_category_is_not_found(self, db_session, staff_ctx, ctx_b):
        foreign = catalog_service.create_category(ctx_b, validate_category({"name": "Beta"}))
        with pytest.raises(NotFound):
            catalog_service.update_category(staff_ctx, foreign["id"], {"name": "Stolen"})


class TestProducts:
    def test_create_records_ledger_event(self, db_session, staff_ctx):
        created = _product(staff_ctx, name="Hammer", sku="H-1")

        assert created["current_price_cents"] == 1500
        assert created["is_active"] is True
        event = db_session.query(LedgerEvent).filter_by(event_type="product.created").one()
        assert event.entity_id == created["id"]

    def test_duplicate_sku_conflicts(self, db_session, staff_ctx):
        _product(staff_ctx, name="Hammer", sku="H-1")
        with pytest.raises(Conflict):
            _product(staff_ctx, name="Other Hammer", sku="H-1")

    def test_products_without_sku_do_not_conflict(self, db_session, staff_ctx):
        _product(staff_ctx, name="Consulting", type="SERVICE", unit="hour")
        _product(staff_ctx, name="Assembly", type="SERVICE", unit="hour")
        assert len(catalog_service.list_products(staff_ctx.org_id)) == 2

    def test_category_from_other_org_rejected(self, db_session, staff_ctx, ctx_b):
        foreign = catalog_service.create_category(ctx_b, validate_category({"name": "Beta"}))
        with pytest.raises(NotFound):
            _product(staff_ctx, name="Hammer", category_id=foreign["id"])

    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_product({"name": "Hammer", "type": "PHYSICAL", "unit": "pcs", "price_cents": 0})
        assert "price_cents" in exc_info.value.details["fields"]

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_product({"name": "Hammer", "type": "PHYSICAL", "unit": "pcs", "price_cents": 1, "colour": "red"})
        assert exc_info.value.details["fields"]["colour"] == ["Field not allowed"]

    def test_price_change_is_audited(self, db_session, staff_ctx, product_p1):
        updated = catalog_service.update_product(staff_ctx, product_p1.id, validate_product({"price_cents": 1250}, partial=True))

        assert updated["current_price_cents"] == 1250
        event = db_session.query(LedgerEvent).filter_by(event_type="product.price_changed").one()
        assert '"new_price_cents": 1250' in event.payload
        assert '"old_price_cents": 1000' in event.payload

    def test_rename_without_price_change_is_not_audited(self, db_session, staff_ctx, product_p1):
        catalog_service.update_product(staff_ctx, product_p1.id, validate_product({"name": "Widget XL"}, partial=True))
        assert db_session.query(LedgerEvent).filter_by(event_type="product.price_changed").count() == 0

    def test_deactivate_hides_from_active_listing(self, db_session, staff_ctx, product_p1, product_p2):
        catalog_service.deactivate_product(staff_ctx, product_p1.id)

        active = [p["sku"] for p in catalog_service.list_products(staff_ctx.org_id, active_only=True)]
        everything = [p["sku"] for p in catalog_service.list_products(staff_ctx.org_id)]
        assert active == ["P2"]
        assert sorted(everything) == ["P1", "P2"]

    def test_deactivate_twice_writes_one_event(self, db_session, staff_ctx, product_p1):
        catalog_service.deactivate_product(staff_ctx, product_p1.id)
        catalog_service.deactivate_product(staff_ctx, product_p1.id)
        assert db_session.query(LedgerEvent).filter_by(event_type="product.deactivated").count() == 1

    def test_product_of_other_org_is_not_found(self, db_session, org_b, staff_ctx):
        foreign = make_product(db_session, org_b, name="Foreign", sku="F1")
        with pytest.raises(NotFound):
            catalog_service.get_product(staff_ctx.org_id, foreign.id)


class TestCatalogActions:
    def test_staff_cannot_delete_category(self, db_session, staff_a, staff_ctx):
        category = catalog_service.create_category(staff_ctx, validate_category({"name": "Tools"}))

        result = actions.run_action(actions.delete_category, staff_a.org_id, staff_a.user_id, category["id"])

        assert result.success is False
        assert result.code == "UNAUTHORIZED"
        assert result.http_status == 403

    def test_admin_can_delete_category(self, db_session, admin_a, admin_ctx):
        category = catalog_service.create_category(admin_ctx, validate_category({"name": "Tools"}))
        result = actions.run_action(actions.delete_category, admin_a.org_id, admin_a.user_id, category["id"])
        assert result.success is True

    def test_viewer_can_read_but_not_write(self, db_session, viewer_a, product_p1):
        read = actions.run_action(actions.list_products, viewer_a.org_id, viewer_a.user_id)
        write = actions.run_action(
            actions.create_product,
            viewer_a.org_id,
            viewer_a.user_id,
            {"name": "Hammer", "type": "PHYSICAL", "unit": "pcs", "price_cents": 100},
        )

        assert read.success is True
        assert [p["sku"] for p in read.data] == ["P1"]
        assert write.http_status == 403

    def test_bad_product_id(self, db_session, staff_a):
        result = actions.run_action(actions.get_product, staff_a.org_id, staff_a.user_id, "abc")
        assert result.code == "VALIDATION_ERROR"
        assert "product_id" in result.details["fields"]

    def test_create_returns_success_status(self, db_session, staff_a):
        result = actions.run_action(
            actions.create_product,
            staff_a.org_id,
            staff_a.user_id,
            {"name": "Hammer", "type": "PHYSICAL", "unit": "pcs", "price_cents": 100},
            success_status=201,
        )
        assert result.http_status == 201
        assert result.to_dict()["data"]["name"] == "Hammer"

    def test_list_products_by_category(self, db_session, staff_a, staff_ctx, product_p2):
        tools = catalog_service.create_category(staff_ctx, validate_category({"name": "Tools"}))
        hammer = _product(staff_ctx, name="Hammer", category_id=tools["id"])

        result = actions.run_action(
            actions.list_products, staff_a.org_id, staff_a.user_id, {"category_id": str(tools["id"])}
        )

        assert result.success is True
        assert [p["id"] for p in result.data] == [hammer["id"]]

    def test_list_products_rejects_unknown_filter(self, db_session, staff_a):
        result = actions.run_action(actions.list_products, staff_a.org_id, staff_a.user_id, {"colour": "red"})
        assert result.code == "VALIDATION_ERROR"
