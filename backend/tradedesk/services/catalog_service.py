# backend/tradedesk/services/catalog_service.py
"""
Catalog Service with Multi-Tenant Support

MULTI-TENANT: All category and product operations are organization-scoped.
- Every query filters by org_id
- Ids from client input that belong to another organization behave exactly
  like ids that do not exist (NotFound), so other tenants stay invisible
- Products are never hard-deleted; orders reference them forever
"""
from __future__ import annotations

from ..errors import Conflict, NotFound
from ..extensions import db
from ..models import Category, Product
from .ledger_service import append_ledger_event
from .membership_service import AuthContext
from .notification_service import notify
from ..time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "type", "unit", "current_price_cents", "category_id", "is_active",
    "reorder_point",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k == "price_cents":
            k = "current_price_cents"
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "is_active" and v is None:
            continue
        setattr(p, k, v)


# =============================================================================
# Categories
# =============================================================================


def get_category(org_id: int, category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id, org_id=org_id).first()
    if not category:
        raise NotFound("category")
    return category


def _ensure_category_name_free(org_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Category.id).filter(
        Category.org_id == org_id,
        db.func.lower(Category.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise Conflict("A category with this name already exists.")


def list_categories(org_id: int) -> list[dict]:
    categories = (
        db.session.query(Category)
        .filter(Category.org_id == org_id)
        .order_by(Category.name.asc())
        .all()
    )
    return [c.to_dict() for c in categories]


def create_category(ctx: AuthContext, patch: dict) -> dict:
    _ensure_category_name_free(ctx.org_id, patch["name"])

    category = Category(org_id=ctx.org_id, name=patch["name"], description=patch.get("description"))
    db.session.add(category)
    db.session.commit()

    notify("category.created", {"org_id": ctx.org_id, "category_id": category.id})
    return category.to_dict()


def update_category(ctx: AuthContext, category_id: int, patch: dict) -> dict:
    category = get_category(ctx.org_id, category_id)
    if "name" in patch:
        _ensure_category_name_free(ctx.org_id, patch["name"], exclude_id=category.id)
        category.name = patch["name"]
    if "description" in patch:
        category.description = patch["description"]

    db.session.commit()
    notify("category.updated", {"org_id": ctx.org_id, "category_id": category.id})
    return category.to_dict()


def delete_category(ctx: AuthContext, category_id: int) -> dict:
    """Refused while any product (active or not) still points at the category."""
    category = get_category(ctx.org_id, category_id)

    in_use = (
        db.session.query(db.func.count(Product.id))
        .filter(Product.org_id == ctx.org_id, Product.category_id == category.id)
        .scalar()
    )
    if in_use:
        raise Conflict(
            "Cannot delete category: it is used by one or more products.",
            details={"product_count": in_use},
        )

    db.session.delete(category)
    db.session.commit()

    notify("category.deleted", {"org_id": ctx.org_id, "category_id": category_id})
    return {"id": category_id, "deleted": True}


# =============================================================================
# Products
# =============================================================================


def get_product(org_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, org_id=org_id).first()
    if not product:
        raise NotFound("product")
    return product


def _ensure_sku_free(org_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product.id).filter(Product.org_id == org_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise Conflict("SKU already exists for this organization.")


def list_products(org_id: int, *, active_only: bool = False, category_id: int | None = None) -> list[dict]:
    query = db.session.query(Product).filter(Product.org_id == org_id)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return [p.to_dict() for p in products]


def create_product(ctx: AuthContext, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        NotFound: category_id does not belong to the organization
        Conflict: SKU already exists in the organization
    """
    if patch.get("category_id") is not None:
        get_category(ctx.org_id, patch["category_id"])
    _ensure_sku_free(ctx.org_id, patch.get("sku"))

    p = Product(org_id=ctx.org_id)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.flush()  # ensure p.id exists before ledger append

    append_ledger_event(
        org_id=ctx.org_id,
        event_type="product.created",
        event_category="catalog",
        entity_type="product",
        entity_id=p.id,
        actor_user_id=ctx.user_id,
        actor_member_id=ctx.member_id,
        occurred_at=utcnow(),
        note=f"Created product sku={p.sku} name={p.name}",
    )

    db.session.commit()
    notify("product.created", {"org_id": ctx.org_id, "product_id": p.id})
    return p.to_dict()


def update_product(ctx: AuthContext, product_id: int, patch: dict) -> dict:
    p = get_product(ctx.org_id, product_id)

    if patch.get("category_id") is not None:
        get_category(ctx.org_id, patch["category_id"])
    if "sku" in patch:
        _ensure_sku_free(ctx.org_id, patch["sku"], exclude_id=p.id)

    old_price = p.current_price_cents
    apply_product_patch(p, patch)

    if p.current_price_cents != old_price:
        append_ledger_event(
            org_id=ctx.org_id,
            event_type="product.price_changed",
            event_category="catalog",
            entity_type="product",
            entity_id=p.id,
            actor_user_id=ctx.user_id,
            actor_member_id=ctx.member_id,
            occurred_at=utcnow(),
            payload={"old_price_cents": old_price, "new_price_cents": p.current_price_cents},
        )

    db.session.commit()
    notify("product.updated", {"org_id": ctx.org_id, "product_id": p.id})
    return p.to_dict()


def deactivate_product(ctx: AuthContext, product_id: int) -> dict:
    """
    Soft delete: inactive products stay attached to historical orders but
    can no longer be ordered.
    """
    p = get_product(ctx.org_id, product_id)
    if p.is_active:
        p.is_active = False
        append_ledger_event(
            org_id=ctx.org_id,
            event_type="product.deactivated",
            event_category="catalog",
            entity_type="product",
            entity_id=p.id,
            actor_user_id=ctx.user_id,
            actor_member_id=ctx.member_id,
            occurred_at=utcnow(),
        )
        db.session.commit()
        notify("product.deactivated", {"org_id": ctx.org_id, "product_id": p.id})
    return p.to_dict()
