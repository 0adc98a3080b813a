# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

WHY: Stock purchases may name the supplier they came from; the supplier
must belong to the same organization as the stock it delivers.

MULTI-TENANT: Suppliers are scoped to organizations via org_id.
Supplier names are unique within an organization (case-insensitive).
"""

from ..errors import Conflict, NotFound
from ..extensions import db
from ..models import Supplier
from .ledger_service import append_ledger_event
from .membership_service import AuthContext
from .notification_service import notify
from ..time_utils import utcnow


def get_supplier(org_id: int, supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id, org_id=org_id).first()
    if not supplier:
        raise NotFound("supplier")
    return supplier


def list_suppliers(org_id: int) -> list[dict]:
    suppliers = (
        db.session.query(Supplier)
        .filter(Supplier.org_id == org_id)
        .order_by(Supplier.name.asc())
        .all()
    )
    return [s.to_dict() for s in suppliers]


def create_supplier(ctx: AuthContext, patch: dict) -> dict:
    name = patch["name"]
    existing = db.session.query(Supplier.id).filter(
        Supplier.org_id == ctx.org_id,
        db.func.lower(Supplier.name) == name.lower(),
    ).first()
    if existing:
        raise Conflict(f"Supplier '{name}' already exists in this organization.")

    supplier = Supplier(
        org_id=ctx.org_id,
        name=name,
        contact_name=patch.get("contact_name"),
        email=patch.get("email"),
        phone=patch.get("phone"),
        notes=patch.get("notes"),
    )
    db.session.add(supplier)
    db.session.flush()

    append_ledger_event(
        org_id=ctx.org_id,
        event_type="supplier.created",
        event_category="supplier",
        entity_type="supplier",
        entity_id=supplier.id,
        actor_user_id=ctx.user_id,
        actor_member_id=ctx.member_id,
        occurred_at=utcnow(),
    )

    db.session.commit()
    notify("supplier.created", {"org_id": ctx.org_id, "supplier_id": supplier.id})
    return supplier.to_dict()
