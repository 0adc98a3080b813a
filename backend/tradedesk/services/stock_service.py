# Overview: Service-layer operations for stock; encapsulates business logic and database work.

"""
tradedesk Stock Invariants & Time Semantics (authoritative)

Canonical time handling:
- All internal datetimes are UTC-naive (tzinfo=None).
- API responses serialize datetimes as ISO-8601 'Z' strings.

Stock model:
- A Stock row is one received batch. Purchases set its quantity_available
  and adjustments move it; orders never touch it.
- StockTransaction is the append-only movement ledger. Rows written by a
  purchase or an adjustment carry stock_id (the batch they changed); SALE
  and RETURN rows written by orders do not.

Availability (STOCK_AVAILABILITY_MODE):
- BATCHES (default): SUM(Stock.quantity_available) for the product.
- LEDGER: the batch sum plus every ledger row without a stock_id, so sales
  and returns are reflected. Batch-backed rows are excluded because the
  batch quantity already contains them.

Audit:
- Each purchase and adjustment appends a LedgerEvent in the same DB transaction.
"""

from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..constants import SHRINKAGE_REASONS, SPOILAGE_REASONS
from ..errors import NotFound, PreconditionFailed, ValidationError
from ..extensions import db
from ..models import Product, Stock, StockTransaction
from ..money import to_quantity
from ..time_utils import utcnow
from .catalog_service import get_product
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import append_ledger_event
from .membership_service import AuthContext
from .notification_service import notify
from .supplier_service import get_supplier


AVAILABILITY_MODES = ("BATCHES", "LEDGER")


def _availability_mode() -> str:
    mode = (current_app.config.get("STOCK_AVAILABILITY_MODE") or "BATCHES").upper()
    if mode not in AVAILABILITY_MODES:
        raise ValueError(f"Unknown STOCK_AVAILABILITY_MODE {mode!r}")
    return mode


def get_available_quantity(org_id: int, product_id: int) -> Decimal:
    """Aggregate available quantity for one product inside one organization."""
    batch_total = db.session.query(
        func.coalesce(func.sum(Stock.quantity_available), 0)
    ).filter(
        Stock.org_id == org_id,
        Stock.product_id == product_id,
    ).scalar()

    total = to_quantity(batch_total)

    if _availability_mode() == "LEDGER":
        movements = db.session.query(
            func.coalesce(func.sum(StockTransaction.quantity_change), 0)
        ).filter(
            StockTransaction.org_id == org_id,
            StockTransaction.product_id == product_id,
            StockTransaction.stock_id.is_(None),
        ).scalar()
        total += to_quantity(movements)

    return total


def get_stock_batches(org_id: int, product_id: int) -> list[dict]:
    get_product(org_id, product_id)
    batches = (
        db.session.query(Stock)
        .filter(Stock.org_id == org_id, Stock.product_id == product_id)
        .order_by(Stock.purchase_date.desc(), Stock.id.desc())
        .all()
    )
    return [b.to_dict() for b in batches]


def get_stock_summary(org_id: int, product_id: int) -> dict:
    product = get_product(org_id, product_id)
    return {
        "product_id": product.id,
        "unit": product.unit,
        "available_quantity": str(get_available_quantity(org_id, product.id)),
        "mode": _availability_mode(),
    }


def add_stock_purchase(ctx: AuthContext, patch: dict) -> dict:
    """
    Receive a batch of a PHYSICAL product.

    Creates the Stock batch and its PURCHASE ledger row atomically. The unit
    must match the product's unit exactly; conversions are not performed.
    """
    def _op():
        product = get_product(ctx.org_id, patch["product_id"])
        if not product.is_physical:
            raise PreconditionFailed("Cannot add stock for a service.")

        if patch["unit"] != product.unit:
            raise ValidationError(
                f'Invalid unit. Product unit: "{product.unit}", received: "{patch["unit"]}".',
                details={"fields": {"unit": [f"Must be {product.unit}"]}},
            )

        supplier_id = patch.get("supplier_id")
        if supplier_id is not None:
            get_supplier(ctx.org_id, supplier_id)

        quantity = to_quantity(patch["quantity"])
        now = utcnow()

        batch = Stock(
            org_id=ctx.org_id,
            product_id=product.id,
            supplier_id=supplier_id,
            quantity_available=quantity,
            unit=product.unit,
            unit_cost_cents=patch["unit_cost_cents"],
            batch_number=patch.get("batch_number"),
            purchase_date=patch.get("purchase_date") or now,
            expiry_date=patch.get("expiry_date"),
            notes=patch.get("notes"),
        )
        db.session.add(batch)
        db.session.flush()

        tx = StockTransaction(
            org_id=ctx.org_id,
            product_id=product.id,
            stock_id=batch.id,
            type="PURCHASE",
            quantity_change=quantity,
            reason="Purchase via Stock Action",
            attachment_url=patch.get("attachment_url"),
            created_by_user_id=ctx.user_id,
            transaction_date=now,
        )
        db.session.add(tx)
        db.session.flush()

        append_ledger_event(
            org_id=ctx.org_id,
            event_type="stock.purchased",
            event_category="stock",
            entity_type="stock_batch",
            entity_id=batch.id,
            actor_user_id=ctx.user_id,
            actor_member_id=ctx.member_id,
            occurred_at=now,
            payload={
                "product_id": product.id,
                "quantity": str(quantity),
                "unit_cost_cents": batch.unit_cost_cents,
                "stock_transaction_id": tx.id,
            },
        )

        db.session.commit()
        return {"stock": batch.to_dict(), "transaction": tx.to_dict()}

    result = run_with_retry(_op)
    notify("stock.purchased", {"org_id": ctx.org_id, "product_id": patch["product_id"]})
    return result


def adjust_stock(ctx: AuthContext, patch: dict) -> dict:
    """
    Move one batch by a signed quantity and record why.

    The batch and its ADJUSTMENT (or SPOILAGE) ledger row are written
    atomically. A batch may only drop below zero for shrinkage reasons,
    where the goods are already gone whatever the count says.
    """
    def _op():
        batch = lock_for_update(
            db.session.query(Stock).filter_by(id=patch["stock_id"], org_id=ctx.org_id)
        ).first()
        if batch is None:
            raise NotFound("stock batch", "Stock batch not found.")

        if patch.get("product_id") is not None and patch["product_id"] != batch.product_id:
            raise ValidationError(
                "Product mismatch with the specified stock batch.",
                details={"fields": {"product_id": [f"Batch {batch.id} belongs to product {batch.product_id}"]}},
            )

        change = to_quantity(patch["quantity"])
        reason = patch["reason"]
        previous = to_quantity(batch.quantity_available)
        new_quantity = previous + change
        if new_quantity < 0 and reason not in SHRINKAGE_REASONS:
            raise PreconditionFailed(
                f"Adjustment results in negative stock ({new_quantity}) for batch {batch.id}. "
                f"Please check quantity or reason.",
                details={"stock_id": batch.id, "previous_quantity": str(previous), "quantity_change": str(change)},
            )

        now = utcnow()
        batch.quantity_available = new_quantity

        tx_type = "SPOILAGE" if change < 0 and reason in SPOILAGE_REASONS else "ADJUSTMENT"
        note = patch.get("notes")
        tx = StockTransaction(
            org_id=ctx.org_id,
            product_id=batch.product_id,
            stock_id=batch.id,
            type=tx_type,
            quantity_change=change,
            reason=f"{reason}: {note}" if note else reason,
            attachment_url=patch.get("attachment_url"),
            created_by_user_id=ctx.user_id,
            transaction_date=now,
        )
        db.session.add(tx)
        db.session.flush()

        append_ledger_event(
            org_id=ctx.org_id,
            event_type="stock.adjusted",
            event_category="stock",
            entity_type="stock_batch",
            entity_id=batch.id,
            actor_user_id=ctx.user_id,
            actor_member_id=ctx.member_id,
            occurred_at=now,
            note=note,
            payload={
                "product_id": batch.product_id,
                "reason": reason,
                "previous_quantity": str(previous),
                "quantity_change": str(change),
                "stock_transaction_id": tx.id,
            },
        )

        db.session.commit()
        return {"stock": batch.to_dict(), "transaction": tx.to_dict()}

    result = run_with_retry(_op)
    current_app.logger.info(
        "Stock batch %s adjusted by %s (%s): org_id=%s",
        result["stock"]["id"], result["transaction"]["quantity_change"], patch["reason"], ctx.org_id,
    )
    notify("stock.adjusted", {"org_id": ctx.org_id, "product_id": result["stock"]["product_id"]})
    return result


def get_low_stock_products(org_id: int) -> list[dict]:
    """Active PHYSICAL products with a reorder point whose availability is at or below it."""
    products = (
        db.session.query(Product)
        .filter(
            Product.org_id == org_id,
            Product.is_active.is_(True),
            Product.type == "PHYSICAL",
            Product.reorder_point.isnot(None),
        )
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )

    low = []
    for product in products:
        available = get_available_quantity(org_id, product.id)
        if available <= to_quantity(product.reorder_point):
            low.append({
                "product_id": product.id,
                "name": product.name,
                "sku": product.sku,
                "unit": product.unit,
                "available_quantity": str(available),
                "reorder_point": str(to_quantity(product.reorder_point)),
            })
    return low


def list_stock_transactions(org_id: int, filters: dict) -> tuple[list[dict], int]:
    """
    Paginated stock ledger, newest first.

    filters: output of validation.validate_stock_transaction_filters
    (product_id, type, date_from, date_to inclusive, skip, take).
    """
    query = db.session.query(StockTransaction).filter(StockTransaction.org_id == org_id)

    if filters.get("product_id") is not None:
        query = query.filter(StockTransaction.product_id == filters["product_id"])
    if filters.get("type"):
        query = query.filter(StockTransaction.type == filters["type"])
    if filters.get("date_from") is not None:
        query = query.filter(StockTransaction.transaction_date >= filters["date_from"])
    if filters.get("date_to") is not None:
        query = query.filter(StockTransaction.transaction_date <= filters["date_to"])

    total = query.count()
    rows = (
        query.order_by(StockTransaction.transaction_date.desc(), StockTransaction.id.desc())
        .offset(filters.get("skip", 0))
        .limit(filters.get("take", 25))
        .all()
    )
    return [r.to_dict() for r in rows], total
