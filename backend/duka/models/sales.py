from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

PAYMENT_METHODS = ("cash", "mpesa", "card")


class Sale(db.Model):
    """
    Point-of-sale record. Immutable once created.

    Product attributes are snapshotted (at_no, product_name, brand) so the
    sale still reads correctly after its inventory line is edited or deleted;
    product_id is nulled when the line is deleted.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_store_created", "store_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    at_no = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(120), nullable=True)

    size = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # All amounts in cents
    price_cents = db.Column(db.Integer, nullable=False)
    original_price_cents = db.Column(db.Integer, nullable=False)
    is_haggled = db.Column(db.Boolean, nullable=False, default=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(120), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    store = db.relationship("Store", backref=db.backref("sales", lazy=True))
    product = db.relationship("InventoryItem")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "at_no": self.at_no,
            "product_name": self.product_name,
            "brand": self.brand,
            "size": self.size,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "original_price_cents": self.original_price_cents,
            "is_haggled": self.is_haggled,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "payments": [p.to_dict() for p in self.payments],
            "created_at": to_utc_z(self.created_at),
        }


class SalePayment(db.Model):
    """One tender line of a sale (cash, mpesa, card)."""
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_sale_payments_amount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True, order_by="SalePayment.id"))

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "amount_cents": self.amount_cents,
        }


class SaleReturn(db.Model):
    """
    Customer return of a sale.

    A sale has at most one return: UniqueConstraint("sale_id").
    inventory_restored is False when the inventory line was deleted before
    the return; the row is still written for the audit trail.
    """
    __tablename__ = "sale_returns"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_sale_returns_sale"),
        db.Index("ix_sale_returns_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    product_id = db.Column(
        db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    customer_name = db.Column(db.String(120), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    return_reason = db.Column(db.Text, nullable=False)
    inventory_restored = db.Column(db.Boolean, nullable=False, default=True)

    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("sale_return", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "store_id": self.store_id,
            "product_name": self.product_name,
            "size": self.size,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "return_reason": self.return_reason,
            "inventory_restored": self.inventory_restored,
            "processed_by_user_id": self.processed_by_user_id,
            "original_sale_date": to_utc_z(self.sale.created_at) if self.sale else None,
            "created_at": to_utc_z(self.created_at),
        }
