from __future__ import annotations

from ..extensions import db
from minierp.time_utils import to_utc_z, utcnow
from .inventory import money_to_float

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")

# Orders in these states no longer change status
FINAL_ORDER_STATUSES = ("delivered", "cancelled")


class Order(db.Model):
    """
    Customer order.

    Customer details and line items belong to the order alone. Amounts are
    fixed at creation: total_amount = subtotal + tax + shipping_cost.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_created_at", "created_at"),
        db.Index("ix_orders_status", "status"),
        db.Index("ix_orders_payment_status", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(64), nullable=False)
    customer_address = db.Column(db.Text, nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending")
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    payment_method = db.Column(db.String(64), nullable=False)
    shipping_method = db.Column(db.String(64), nullable=False)
    tracking_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    items = db.relationship(
        "OrderItem",
        backref="order",
        order_by="OrderItem.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} total={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
                "address": self.customer_address,
            },
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_to_float(self.subtotal),
            "tax": money_to_float(self.tax),
            "shippingCost": money_to_float(self.shipping_cost),
            "totalAmount": money_to_float(self.total_amount),
            "status": self.status,
            "paymentStatus": self.payment_status,
            "paymentMethod": self.payment_method,
            "shippingMethod": self.shipping_method,
            "trackingNumber": self.tracking_number,
            "notes": self.notes,
            "createdBy": self.created_by.to_ref() if self.created_by else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        """Compact form used by the dashboard's recent orders list."""
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "customer": {"name": self.customer_name, "email": self.customer_email},
            "totalAmount": money_to_float(self.total_amount),
            "status": self.status,
            "createdBy": {"name": self.created_by.name} if self.created_by else None,
            "createdAt": to_utc_z(self.created_at),
        }


class OrderItem(db.Model):
    """
    Order line with a point-in-time copy of the product's name, SKU and price.

    product_id may dangle or be cleared after the product is deleted; the
    snapshot columns stay authoritative.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "line_number", name="uq_order_items_order_line"),
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "product": self.product_id,
            "productName": self.product_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unitPrice": money_to_float(self.unit_price),
            "totalPrice": money_to_float(self.total_price),
        }
