"""
Order Service - atomic order placement and status changes

WHY: Placing an order touches four tables (orders, order_items,
stock_transactions, deliveries) plus the document counter. Either all of it
lands or none of it does.

ORDER OF CHECKS (each a distinct failure, nothing persisted on any of them):
1. customer belongs to the organization          -> NotFound(customer)
2. every product exists, is active, same org     -> NotFound(product), aggregate
3. every product has a positive selling price    -> PreconditionFailed, names product
4. order number reserved (takes the org's counter row lock)
5. PHYSICAL products have enough stock           -> InsufficientStock, names product
6. each line and the order total <= MAX_AMOUNT_CENTS -> ValidationError
7. total - discount >= 0                          -> InvalidDiscount

CONCURRENCY:
- The counter row UPDATE in step 4 holds a row lock until commit, so two
  orders for the same organization cannot interleave their stock checks.
- Numbers are gap-free among committed orders: a failed order rolls back
  its counter increment too.

Not idempotent: the same payload submitted twice creates two orders.
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal

from flask import current_app

from ..constants import DELIVERY_STATUS_FOR_ORDER_STATUS, ORDER_STATUS_TRANSITIONS
from ..errors import InsufficientStock, InvalidDiscount, NotFound, PreconditionFailed
from ..extensions import db
from ..models import Customer, Delivery, Order, OrderItem, Product, StockTransaction
from ..money import MAX_AMOUNT_CENTS, format_cents, line_total_cents, to_quantity
from ..time_utils import utcnow
from ..validation import CreateOrderCommand, FieldErrors, UpdateOrderStatusCommand
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_order_number
from .ledger_service import append_ledger_event, list_ledger_events
from .membership_service import AuthContext
from .notification_service import notify
from .stock_service import get_available_quantity


SALE_REASON = "Order Item"
CANCEL_RETURN_REASON = "Order Cancelled"


def _load_customer(org_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, org_id=org_id).first()
    if not customer:
        raise NotFound("customer", "Customer not found.")
    return customer


def _load_products(org_id: int, product_ids: list[int]) -> dict[int, Product]:
    wanted = set(product_ids)
    products = (
        db.session.query(Product)
        .filter(
            Product.id.in_(wanted),
            Product.org_id == org_id,
            Product.is_active.is_(True),
        )
        .all()
    )
    by_id = {p.id: p for p in products}
    if len(by_id) != len(wanted):
        raise NotFound(
            "product",
            "One or more products not found, inactive, or invalid.",
            details={"product_ids": sorted(wanted - set(by_id))},
        )
    return by_id


def _check_prices(products: list[Product]) -> None:
    for product in products:
        if not product.current_price_cents or product.current_price_cents <= 0:
            raise PreconditionFailed(
                f'Product "{product.name}" (SKU: {product.sku or "N/A"}) must have a selling '
                f"price configured before it can be added to an order.",
                details={"product_id": product.id},
            )


def _check_stock(org_id: int, requested: "OrderedDict[int, Decimal]", products: dict[int, Product]) -> None:
    for product_id, quantity in requested.items():
        product = products[product_id]
        if not product.is_physical:
            continue
        available = get_available_quantity(org_id, product_id)
        if available < quantity:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}.",
                details={
                    "product_id": product_id,
                    "requested_quantity": str(quantity),
                    "available_quantity": str(available),
                },
            )


def _create_order_locked(ctx: AuthContext, cmd: CreateOrderCommand) -> Order:
    customer = _load_customer(ctx.org_id, cmd.customer_id)
    products = _load_products(ctx.org_id, [item.product_id for item in cmd.items])

    # Products in the order they first appear, so errors name the earliest offender
    requested: "OrderedDict[int, Decimal]" = OrderedDict()
    for item in cmd.items:
        requested[item.product_id] = requested.get(item.product_id, Decimal("0")) + to_quantity(item.quantity)

    _check_prices([products[pid] for pid in requested])

    order_number = next_order_number(ctx.org_id)

    _check_stock(ctx.org_id, requested, products)

    # Price snapshot: read once here and copied onto every line
    lines = []
    total_cents = 0
    oversized = FieldErrors()
    for i, item in enumerate(cmd.items):
        product = products[item.product_id]
        quantity = to_quantity(item.quantity)
        unit_price_cents = product.current_price_cents
        line_total = line_total_cents(quantity, unit_price_cents)
        total_cents += line_total
        if line_total > MAX_AMOUNT_CENTS:
            oversized.add(f"items.{i}.quantity", f"Line total cannot exceed {format_cents(MAX_AMOUNT_CENTS)}")
        lines.append((product, quantity, unit_price_cents, line_total))

    if total_cents > MAX_AMOUNT_CENTS and not oversized:
        oversized.add("items", f"Order total cannot exceed {format_cents(MAX_AMOUNT_CENTS)}")
    oversized.raise_if_any("Order amount is too large.")

    final_cents = total_cents - cmd.discount_cents
    if final_cents < 0:
        raise InvalidDiscount(
            "Final amount cannot be negative.",
            details={"total_amount_cents": total_cents, "discount_amount_cents": cmd.discount_cents},
        )

    now = utcnow()
    order = Order(
        org_id=ctx.org_id,
        customer_id=customer.id,
        order_number=order_number,
        status=cmd.status,
        total_amount_cents=total_cents,
        discount_amount_cents=cmd.discount_cents,
        final_amount_cents=final_cents,
        loyalty_points_earned=0,
        notes=cmd.notes,
        created_by_member_id=ctx.member_id,
    )
    db.session.add(order)
    db.session.flush()

    for product, quantity, unit_price_cents, line_total in lines:
        order.items.append(OrderItem(
            product_id=product.id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_price_cents=line_total,
            loyalty_points_awarded=0,
        ))
        if product.is_physical:
            db.session.add(StockTransaction(
                org_id=ctx.org_id,
                product_id=product.id,
                related_order_id=order.id,
                type="SALE",
                quantity_change=-quantity,
                reason=SALE_REASON,
                created_by_user_id=ctx.user_id,
                transaction_date=now,
            ))

    if cmd.delivery is not None:
        d = cmd.delivery
        order.delivery = Delivery(
            type=d.type,
            status="PENDING",
            address_line1=d.address_line1,
            address_line2=d.address_line2,
            city=d.city,
            postal_code=d.postal_code,
            country=d.country,
            payment_method=d.payment_method,
            payment_reference=d.payment_reference,
        )

    db.session.flush()

    append_ledger_event(
        org_id=ctx.org_id,
        event_type="order.created",
        event_category="order",
        entity_type="order",
        entity_id=order.id,
        actor_user_id=ctx.user_id,
        actor_member_id=ctx.member_id,
        order_id=order.id,
        occurred_at=now,
        note=f"Created order {order.order_number}",
        payload={
            "customer_id": customer.id,
            "total_amount_cents": total_cents,
            "discount_amount_cents": cmd.discount_cents,
            "final_amount_cents": final_cents,
            "item_count": len(lines),
        },
    )
    return order


def create_order(ctx: AuthContext, cmd: CreateOrderCommand) -> dict:
    """Create an order with its items, SALE stock rows and optional delivery."""
    def _op():
        order = _create_order_locked(ctx, cmd)
        db.session.commit()
        return order.to_dict()

    result = run_with_retry(_op)
    current_app.logger.info(
        "Order %s created: org_id=%s member_id=%s final=%s",
        result["order_number"], ctx.org_id, ctx.member_id, result["final_amount_cents"],
    )
    notify("order.created", {"org_id": ctx.org_id, "order_id": result["id"]})
    return result


def _restock_cancelled_order(ctx: AuthContext, order: Order, now) -> int:
    """
    Write one RETURN row per PHYSICAL line. Runs at most once per order:
    a later re-cancel after reopening finds the earlier RETURN rows.
    """
    already = (
        db.session.query(StockTransaction.id)
        .filter(
            StockTransaction.related_order_id == order.id,
            StockTransaction.type == "RETURN",
            StockTransaction.reason == CANCEL_RETURN_REASON,
        )
        .first()
    )
    if already:
        return 0

    written = 0
    for item in order.items:
        if not item.product.is_physical:
            continue
        db.session.add(StockTransaction(
            org_id=order.org_id,
            product_id=item.product_id,
            related_order_id=order.id,
            type="RETURN",
            quantity_change=to_quantity(item.quantity),
            reason=CANCEL_RETURN_REASON,
            created_by_user_id=ctx.user_id,
            transaction_date=now,
        ))
        written += 1
    return written


def update_order_status(ctx: AuthContext, cmd: UpdateOrderStatusCommand) -> dict:
    """
    Set a new status, optionally updating tracking number and payment reference.

    By default any status may follow any other. ORDER_STRICT_STATUS_TRANSITIONS
    enforces constants.ORDER_STATUS_TRANSITIONS; ORDER_CANCEL_RETURNS_STOCK
    returns physical stock on the first move into CANCELLED.
    """
    strict = current_app.config.get("ORDER_STRICT_STATUS_TRANSITIONS", False)
    restock = current_app.config.get("ORDER_CANCEL_RETURNS_STOCK", False)

    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(id=cmd.order_id, org_id=ctx.org_id)
        ).first()
        if not order:
            raise NotFound("order", "Order not found.")

        old_status = order.status
        new_status = cmd.status
        if strict and new_status != old_status and new_status not in ORDER_STATUS_TRANSITIONS.get(old_status, set()):
            raise PreconditionFailed(
                f"Cannot change order status from {old_status} to {new_status}.",
                details={"from": old_status, "to": new_status},
            )

        now = utcnow()
        order.status = new_status

        if cmd.tracking_number is not None or cmd.payment_reference is not None:
            if order.delivery is None:
                order.delivery = Delivery(type="DELIVERY", status="PENDING")
            if cmd.tracking_number is not None:
                order.delivery.tracking_number = cmd.tracking_number
            if cmd.payment_reference is not None:
                order.delivery.payment_reference = cmd.payment_reference
        if order.delivery is not None and new_status in DELIVERY_STATUS_FOR_ORDER_STATUS:
            order.delivery.status = DELIVERY_STATUS_FOR_ORDER_STATUS[new_status]

        returned = 0
        if restock and new_status == "CANCELLED" and old_status != "CANCELLED":
            returned = _restock_cancelled_order(ctx, order, now)

        db.session.flush()

        append_ledger_event(
            org_id=ctx.org_id,
            event_type="order.status_changed",
            event_category="order",
            entity_type="order",
            entity_id=order.id,
            actor_user_id=ctx.user_id,
            actor_member_id=ctx.member_id,
            order_id=order.id,
            occurred_at=now,
            payload={"from": old_status, "to": new_status, "returned_lines": returned},
        )

        db.session.commit()
        return order.to_dict()

    result = run_with_retry(_op)
    notify("order.status_changed", {"org_id": ctx.org_id, "order_id": result["id"], "status": result["status"]})
    return result


def get_order(org_id: int, order_id: int) -> dict:
    order = db.session.query(Order).filter_by(id=order_id, org_id=org_id).first()
    if not order:
        raise NotFound("order", "Order not found.")
    data = order.to_dict()
    data["customer"] = order.customer.to_dict()
    return data


def list_orders(org_id: int, *, customer_id: int | None = None, status: str | None = None) -> list[dict]:
    """Newest first, optionally narrowed to one customer and/or one status."""
    query = db.session.query(Order).filter(Order.org_id == org_id)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    if status is not None:
        query = query.filter(Order.status == status)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [o.to_dict() for o in orders]


def get_order_history(org_id: int, order_id: int) -> list[dict]:
    """Audit events recorded against one order, newest first."""
    if not db.session.query(Order.id).filter_by(id=order_id, org_id=org_id).first():
        raise NotFound("order", "Order not found.")
    return [ev.to_dict() for ev in list_ledger_events(org_id, order_id=order_id)]
