# Overview: Pytest coverage for customer and supplier records.

import pytest

from tradedesk.errors import Conflict, NotFound, ValidationError
from tradedesk.services import customer_service, supplier_service
from tradedesk.validation import validate_customer, validate_supplier


class TestCustomers:
    def test_create(self, db_session, staff_ctx):
        created = customer_service.create_customer(
            staff_ctx,
            validate_customer({"customer_code": "C9", "name": "Nine Ltd", "email": "nine@example.com", "city": "Oslo"}),
        )
        assert created["customer_code"] == "C9"
        assert created["city"] == "Oslo"

    def test_duplicate_code_conflicts(self, db_session, staff_ctx, customer_a):
        with pytest.raises(Conflict):
            customer_service.create_customer(staff_ctx, validate_customer({"customer_code": "C1", "name": "Copy"}))

    def test_duplicate_email_conflicts_case_insensitively(self, db_session, staff_ctx, customer_a):
        with pytest.raises(Conflict):
            customer_service.create_customer(
                staff_ctx,
                validate_customer({"customer_code": "C2", "name": "Copy", "email": "C1@Example.com"}),
            )

    def test_codes_are_per_org(self, db_session, ctx_b, customer_a):
        created = customer_service.create_customer(ctx_b, validate_customer({"customer_code": "C1", "name": "Beta One"}))
        assert created["org_id"] == ctx_b.org_id

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_customer({"customer_code": "C2", "name": "Two", "email": "not-an-email"})
        assert "email" in exc_info.value.details["fields"]

    def test_update_keeps_own_code(self, db_session, staff_ctx, customer_a):
        updated = customer_service.update_customer(
            staff_ctx, customer_a.id, validate_customer({"customer_code": "C1", "phone": "555-0100"}, partial=True)
        )
        assert updated["phone"] == "555-0100"

    def test_update_clears_optional_field(self, db_session, staff_ctx, customer_a):
        updated = customer_service.update_customer(staff_ctx, customer_a.id, validate_customer({"email": None}, partial=True))
        assert updated["email"] is None

    def test_required_field_cannot_be_nulled(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_customer({"name": None}, partial=True)
        assert exc_info.value.details["fields"]["name"] == ["Cannot be null"]

    def test_search(self, db_session, staff_ctx, customer_a):
        customer_service.create_customer(staff_ctx, validate_customer({"customer_code": "Z7", "name": "Zeta Works"}))

        assert [c["customer_code"] for c in customer_service.list_customers(staff_ctx.org_id, search="zeta")] == ["Z7"]
        assert len(customer_service.list_customers(staff_ctx.org_id)) == 2

    def test_foreign_customer_not_found(self, db_session, ctx_b, customer_a):
        with pytest.raises(NotFound):
            customer_service.get_customer(ctx_b.org_id, customer_a.id)


class TestSuppliers:
    def test_create_and_list(self, db_session, staff_ctx):
        supplier_service.create_supplier(staff_ctx, validate_supplier({"name": "Zenith Metals"}))
        supplier_service.create_supplier(staff_ctx, validate_supplier({"name": "Acme Supplies", "contact_name": "Ann"}))

        names = [s["name"] for s in supplier_service.list_suppliers(staff_ctx.org_id)]
        assert names == ["Acme Supplies", "Zenith Metals"]

    def test_duplicate_name_conflicts(self, db_session, staff_ctx):
        supplier_service.create_supplier(staff_ctx, validate_supplier({"name": "Acme Supplies"}))
        with pytest.raises(Conflict):
            supplier_service.create_supplier(staff_ctx, validate_supplier({"name": "ACME SUPPLIES"}))

    def test_suppliers_are_per_org(self, db_session, staff_ctx, ctx_b):
        supplier_service.create_supplier(staff_ctx, validate_supplier({"name": "Acme Supplies"}))
        assert supplier_service.list_suppliers(ctx_b.org_id) == []
