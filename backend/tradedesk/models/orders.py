from __future__ import annotations

from ..extensions import db
from ..money import format_cents, format_quantity
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    Sales order document.

    INVARIANTS (enforced by order_service before insert):
    - final_amount_cents == total_amount_cents - discount_amount_cents
    - final_amount_cents >= 0
    - order_number is unique per organization (ORD-YYYYMM-NNNN)
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("org_id", "order_number", name="uq_orders_org_number"),
        db.Index("ix_orders_org_status_created", "org_id", "status", "created_at"),
        db.CheckConstraint("final_amount_cents >= 0", name="final_amount_non_negative"),
        db.CheckConstraint(
            "final_amount_cents = total_amount_cents - discount_amount_cents",
            name="final_amount_consistent",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Human-readable number, distinct from the primary key
    order_number = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    discount_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    final_amount_cents = db.Column(db.BigInteger, nullable=False)

    loyalty_points_earned = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.String(1000), nullable=True)

    created_by_member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    created_by = db.relationship("Member")
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    delivery = db.relationship(
        "Delivery",
        backref="order",
        uselist=False,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, *, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "customer_id": self.customer_id,
            "order_number": self.order_number,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "total_amount": format_cents(self.total_amount_cents),
            "discount_amount": format_cents(self.discount_amount_cents),
            "final_amount": format_cents(self.final_amount_cents),
            "loyalty_points_earned": self.loyalty_points_earned,
            "notes": self.notes,
            "created_by_member_id": self.created_by_member_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["delivery"] = self.delivery.to_dict() if self.delivery else None
        return data


class OrderItem(db.Model):
    """
    Line item on an order.

    unit_price_cents is a snapshot of Product.current_price_cents taken
    while the order was validated; later price changes never touch it.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)
    total_price_cents = db.Column(db.BigInteger, nullable=False)

    loyalty_points_awarded = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": format_quantity(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "unit_price": format_cents(self.unit_price_cents),
            "total_price": format_cents(self.total_price_cents),
            "loyalty_points_awarded": self.loyalty_points_awarded,
            "created_at": to_utc_z(self.created_at),
        }


class Delivery(db.Model):
    """Fulfilment and payment details for an order (at most one per order)."""
    __tablename__ = "deliveries"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_deliveries_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)

    # DELIVERY or IN_STORE
    type = db.Column(db.String(16), nullable=False, default="DELIVERY")

    address_line1 = db.Column(db.String(100), nullable=True)
    address_line2 = db.Column(db.String(100), nullable=True)
    city = db.Column(db.String(50), nullable=True)
    postal_code = db.Column(db.String(20), nullable=True)
    country = db.Column(db.String(50), nullable=True)

    status = db.Column(db.String(32), nullable=True)
    tracking_number = db.Column(db.String(100), nullable=True)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_reference = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "type": self.type,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "postal_code": self.postal_code,
            "country": self.country,
            "status": self.status,
            "tracking_number": self.tracking_number,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-organization, per-period document counters.

    WHY: Human-readable numbers must never be reconstructed by scanning the
    latest existing number; two requests would read the same "last" value.
    The counter row is incremented with UPDATE ... SET next_number =
    next_number + 1, which holds a row lock until the surrounding
    transaction commits.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("org_id", "document_type", "period", name="uq_doc_sequences_org_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    # YYYYMM
    period = db.Column(db.String(6), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
