# Overview: Business actions: authorization, input validation and the service call, behind one error boundary.

"""
Actions are the public entry points used by routes and the CLI.

Each action resolves the caller's membership first, validates input second,
then calls exactly one service function. run_action() wraps the call and
returns an ActionResult; no exception escapes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .constants import WRITE_ROLES
from .errors import ActionError, TransactionFailure, Unauthenticated, ValidationError
from .extensions import db
from .services import (
    auth_service,
    catalog_service,
    customer_service,
    membership_service,
    order_service,
    session_service,
    stock_service,
    supplier_service,
)
from .services.concurrency import SequenceConflict
from .services.membership_service import get_business_auth_context
from .validation import (
    validate_category,
    validate_create_order,
    validate_customer,
    validate_product,
    validate_stock_purchase,
    validate_stock_transaction_filters,
    validate_supplier,
    validate_id,
    validate_order_filters,
    validate_product_filters,
    validate_stock_adjustment,
    validate_update_order_status,
)


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: str | None = None
    code: str | None = None
    details: dict = field(default_factory=dict)
    http_status: int = 200

    @classmethod
    def ok(cls, data: Any, http_status: int = 200) -> "ActionResult":
        return cls(success=True, data=data, http_status=http_status)

    @classmethod
    def fail(cls, exc: ActionError) -> "ActionResult":
        return cls(
            success=False,
            error=exc.message,
            code=exc.code,
            details=exc.details,
            http_status=exc.http_status,
        )

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        out = {"success": False, "error": self.error, "code": self.code}
        if self.details:
            out["details"] = self.details
        return out


def run_action(func: Callable[..., Any], *args, success_status: int = 200, **kwargs) -> ActionResult:
    """
    Call func and convert the outcome into an ActionResult.

    ActionError -> its own code/status.
    SQLAlchemyError or an exhausted SequenceConflict -> TransactionFailure.
    The session is always rolled back on failure.
    """
    try:
        return ActionResult.ok(func(*args, **kwargs), http_status=success_status)
    except ActionError as exc:
        db.session.rollback()
        current_app.logger.info("%s failed: %s %s", func.__name__, exc.code, exc.message)
        return ActionResult.fail(exc)
    except (SQLAlchemyError, SequenceConflict):
        db.session.rollback()
        current_app.logger.exception("%s failed with a database error", func.__name__)
        return ActionResult.fail(TransactionFailure("The operation could not be completed. Please try again."))


# =============================================================================
# Sessions
# =============================================================================


def login(payload: Any, user_agent: str | None = None, ip_address: str | None = None) -> dict:
    """Exchange username (or email) and password for a bearer token."""
    payload = payload if isinstance(payload, dict) else {}
    login_name = payload.get("username") or payload.get("email")
    password = payload.get("password")
    if not login_name or not password:
        raise ValidationError("username/email and password required")

    user = auth_service.authenticate(login_name, password)
    if user is None:
        current_app.logger.info("Failed login for %s from %s", login_name, ip_address)
        raise Unauthenticated("Invalid credentials")

    record, token = session_service.create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    return {
        "user": user.to_dict(),
        "token": token,
        "session": record.to_dict(),
        "memberships": [m.to_dict() for m in membership_service.list_memberships(user.id)],
    }


def whoami(user) -> dict:
    return {
        "user": user.to_dict(),
        "memberships": [m.to_dict() for m in membership_service.list_memberships(user.id)],
    }


# =============================================================================
# Orders
# =============================================================================


def create_order(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    cmd = validate_create_order(payload)
    return order_service.create_order(ctx, cmd)


def update_order_status(org_id: int, user_id: int, order_id: Any, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    cmd = validate_update_order_status(order_id, payload)
    return order_service.update_order_status(ctx, cmd)


def get_order(org_id: int, user_id: int, order_id: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id)
    return order_service.get_order(ctx.org_id, validate_id(order_id, "order_id"))


def list_orders(org_id: int, user_id: int, params: Any = None) -> list[dict]:
    """params: optional customer_id and status (query string values)."""
    ctx = get_business_auth_context(org_id, user_id)
    filters = validate_order_filters(params)
    return order_service.list_orders(ctx.org_id, customer_id=filters.get("customer_id"), status=filters.get("status"))


def get_order_history(org_id: int, user_id: int, order_id: Any) -> list[dict]:
    ctx = get_business_auth_context(org_id, user_id)
    return order_service.get_order_history(ctx.org_id, validate_id(order_id, "order_id"))


# =============================================================================
# Catalog
# =============================================================================


def list_categories(org_id: int, user_id: int) -> list[dict]:
    ctx = get_business_auth_context(org_id, user_id)
    return catalog_service.list_categories(ctx.org_id)


def create_category(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return catalog_service.create_category(ctx, validate_category(payload))


def update_category(org_id: int, user_id: int, category_id: Any, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    patch = validate_category(payload, partial=True)
    return catalog_service.update_category(ctx, validate_id(category_id, "category_id"), patch)


def delete_category(org_id: int, user_id: int, category_id: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, ("ADMIN",))
    return catalog_service.delete_category(ctx, validate_id(category_id, "category_id"))


def list_products(org_id: int, user_id: int, params: Any = None) -> list[dict]:
    """params: optional category_id and active_only (query string values)."""
    ctx = get_business_auth_context(org_id, user_id)
    filters = validate_product_filters(params)
    return catalog_service.list_products(
        ctx.org_id,
        active_only=bool(filters.get("active_only")),
        category_id=filters.get("category_id"),
    )


def get_product(org_id: int, user_id: int, product_id: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id)
    return catalog_service.get_product(ctx.org_id, validate_id(product_id, "product_id")).to_dict()


def create_product(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return catalog_service.create_product(ctx, validate_product(payload))


def update_product(org_id: int, user_id: int, product_id: Any, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    patch = validate_product(payload, partial=True)
    return catalog_service.update_product(ctx, validate_id(product_id, "product_id"), patch)


def deactivate_product(org_id: int, user_id: int, product_id: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return catalog_service.deactivate_product(ctx, validate_id(product_id, "product_id"))


# =============================================================================
# Customers / suppliers
# =============================================================================


def list_customers(org_id: int, user_id: int, search: str | None = None) -> list[dict]:
    ctx = get_business_auth_context(org_id, user_id)
    return customer_service.list_customers(ctx.org_id, search=search)


def get_customer(org_id: int, user_id: int, customer_id: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id)
    return customer_service.get_customer(ctx.org_id, validate_id(customer_id, "customer_id")).to_dict()


def create_customer(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return customer_service.create_customer(ctx, validate_customer(payload))


def update_customer(org_id: int, user_id: int, customer_id: Any, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    patch = validate_customer(payload, partial=True)
    return customer_service.update_customer(ctx, validate_id(customer_id, "customer_id"), patch)


def list_suppliers(org_id: int, user_id: int) -> list[dict]:
    ctx = get_business_auth_context(org_id, user_id)
    return supplier_service.list_suppliers(ctx.org_id)


def create_supplier(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return supplier_service.create_supplier(ctx, validate_supplier(payload))


# =============================================================================
# Stock
# =============================================================================


def add_stock_purchase(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return stock_service.add_stock_purchase(ctx, validate_stock_purchase(payload))


def adjust_stock(org_id: int, user_id: int, payload: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id, WRITE_ROLES)
    return stock_service.adjust_stock(ctx, validate_stock_adjustment(payload))


def get_low_stock_products(org_id: int, user_id: int) -> list[dict]:
    ctx = get_business_auth_context(org_id, user_id)
    return stock_service.get_low_stock_products(ctx.org_id)


def get_stock_summary(org_id: int, user_id: int, product_id: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id)
    return stock_service.get_stock_summary(ctx.org_id, validate_id(product_id, "product_id"))


def get_stock_batches(org_id: int, user_id: int, product_id: Any) -> list[dict]:
    ctx = get_business_auth_context(org_id, user_id)
    return stock_service.get_stock_batches(ctx.org_id, validate_id(product_id, "product_id"))


def list_stock_transactions(org_id: int, user_id: int, params: Any) -> dict:
    ctx = get_business_auth_context(org_id, user_id)
    filters = validate_stock_transaction_filters(params)
    rows, total = stock_service.list_stock_transactions(ctx.org_id, filters)
    return {
        "items": rows,
        "total": total,
        "skip": filters["skip"],
        "take": filters["take"],
    }
