# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Service

MULTI-TENANT: Customers are scoped to organizations via org_id.
customer_code is required and unique within an organization; email is
optional but, when present, also unique within the organization.
"""

from ..errors import Conflict, NotFound
from ..extensions import db
from ..models import Customer
from .membership_service import AuthContext
from .notification_service import notify

CUSTOMER_MUTABLE_FIELDS = {
    "customer_code", "name", "phone", "email",
    "address_line1", "address_line2", "city", "postal_code", "country",
}


def get_customer(org_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, org_id=org_id).first()
    if not customer:
        raise NotFound("customer")
    return customer


def _ensure_unique(org_id: int, patch: dict, exclude_id: int | None = None) -> None:
    code = patch.get("customer_code")
    if code:
        query = db.session.query(Customer.id).filter(
            Customer.org_id == org_id,
            Customer.customer_code == code,
        )
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise Conflict(f"Customer code '{code}' already exists.")

    email = patch.get("email")
    if email:
        query = db.session.query(Customer.id).filter(
            Customer.org_id == org_id,
            db.func.lower(Customer.email) == email.lower(),
        )
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise Conflict(f"A customer with email '{email}' already exists.")


def list_customers(org_id: int, *, search: str | None = None) -> list[dict]:
    query = db.session.query(Customer).filter(Customer.org_id == org_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                Customer.name.ilike(like),
                Customer.customer_code.ilike(like),
                Customer.email.ilike(like),
            )
        )
    return [c.to_dict() for c in query.order_by(Customer.name.asc(), Customer.id.asc()).all()]


def create_customer(ctx: AuthContext, patch: dict) -> dict:
    _ensure_unique(ctx.org_id, patch)

    customer = Customer(org_id=ctx.org_id)
    for key, value in patch.items():
        if key in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, key, value)

    db.session.add(customer)
    db.session.commit()

    notify("customer.created", {"org_id": ctx.org_id, "customer_id": customer.id})
    return customer.to_dict()


def update_customer(ctx: AuthContext, customer_id: int, patch: dict) -> dict:
    customer = get_customer(ctx.org_id, customer_id)
    _ensure_unique(ctx.org_id, patch, exclude_id=customer.id)

    for key, value in patch.items():
        if key in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, key, value)

    db.session.commit()
    notify("customer.updated", {"org_id": ctx.org_id, "customer_id": customer.id})
    return customer.to_dict()
