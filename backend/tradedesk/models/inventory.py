from __future__ import annotations

from ..extensions import db
from ..money import format_cents, format_quantity
from ..time_utils import to_utc_z


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("org_id", "name", name="uq_suppliers_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("suppliers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Stock(db.Model):
    """
    A stock batch: one physical receipt of a product.

    Availability of a product is the SUM of quantity_available across its
    batches. Orders do not decrement batches; they append SALE rows to the
    stock transaction ledger.
    """
    __tablename__ = "stock_batches"
    __table_args__ = (
        db.Index("ix_stock_batches_org_product", "org_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    quantity_available = db.Column(db.Numeric(14, 3), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    unit_cost_cents = db.Column(db.BigInteger, nullable=False)

    batch_number = db.Column(db.String(50), nullable=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_batches", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("stock_batches", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "quantity_available": format_quantity(self.quantity_available),
            "unit": self.unit,
            "unit_cost_cents": self.unit_cost_cents,
            "unit_cost": format_cents(self.unit_cost_cents),
            "batch_number": self.batch_number,
            "purchase_date": to_utc_z(self.purchase_date),
            "expiry_date": to_utc_z(self.expiry_date) if self.expiry_date else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class StockTransaction(db.Model):
    """
    Append-only stock ledger.

    SIGN CONVENTION:
    - PURCHASE, RETURN, TRANSFER_IN: quantity_change > 0
    - SALE, SPOILAGE, TRANSFER_OUT: quantity_change < 0
    - ADJUSTMENT: either sign

    IMMUTABLE: Rows are never updated or deleted.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stocktx_org_product_date", "org_id", "product_id", "transaction_date"),
        db.Index("ix_stocktx_org_type_date", "org_id", "type", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("stock_batches.id"), nullable=True, index=True)
    related_order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity_change = db.Column(db.Numeric(14, 3), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    attachment_url = db.Column(db.String(500), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    transaction_date = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    stock = db.relationship("Stock")
    related_order = db.relationship("Order", backref=db.backref("stock_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "product_id": self.product_id,
            "stock_id": self.stock_id,
            "related_order_id": self.related_order_id,
            "type": self.type,
            "quantity_change": format_quantity(self.quantity_change),
            "reason": self.reason,
            "attachment_url": self.attachment_url,
            "created_by_user_id": self.created_by_user_id,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_at": to_utc_z(self.created_at),
        }
