from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from minierp.time_utils import to_utc_z, utcnow

PRODUCT_STATUSES = ("in-stock", "low-stock", "out-of-stock", "discontinued")


def money_to_float(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


def compute_stock_status(current_stock: int, reorder_level: int, status: str | None) -> str | None:
    """
    Derive product status from stock against the reorder level.

    discontinued survives only while stock stays above the reorder level;
    running low or out still reports the stock condition.
    """
    if current_stock == 0:
        return "out-of-stock"
    if 0 < current_stock <= reorder_level:
        return "low-stock"
    if current_stock > reorder_level and status != "discontinued":
        return "in-stock"
    return status


class Product(db.Model):
    """
    Catalog entry with stock and reorder settings.

    SKU is globally unique and stored upper-case. status is derived (see
    compute_stock_status) and refreshed whenever stock changes, including
    order decrements.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_status", "status"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)
    reorder_quantity = db.Column(db.Integer, nullable=False, default=50)

    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    supplier = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="in-stock")
    last_restocked = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.current_stock} status={self.status!r}>"

    def refresh_status(self) -> None:
        self.status = compute_stock_status(self.current_stock, self.reorder_level, self.status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "description": self.description,
            "currentStock": self.current_stock,
            "reorderLevel": self.reorder_level,
            "reorderQuantity": self.reorder_quantity,
            "unitPrice": money_to_float(self.unit_price),
            "supplier": self.supplier,
            "location": self.location,
            "status": self.status,
            "lastRestocked": to_utc_z(self.last_restocked),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
