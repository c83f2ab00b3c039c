# Overview: Service-layer operations for reporting; read-only aggregation queries.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from minierp.extensions import db
from minierp.models import Order, OrderItem, Product, User
from minierp.time_utils import days_ago
from minierp.validation import ValidationError


DEFAULT_PERIOD_DAYS = 30
MAX_PERIOD_DAYS = 3650
RECENT_ORDERS_LIMIT = 5
TOP_PRODUCTS_LIMIT = 10


def parse_period(raw: str | None) -> int:
    if raw in (None, ""):
        return DEFAULT_PERIOD_DAYS
    try:
        period = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("period must be a whole number of days")
    if period < 1:
        raise ValidationError("period must be >= 1")
    if period > MAX_PERIOD_DAYS:
        raise ValidationError(f"period cannot exceed {MAX_PERIOD_DAYS} days")
    return period


def _float(value) -> float:
    return float(value or 0)


def overview(start: datetime) -> dict:
    total_orders = db.session.query(func.count(Order.id)).filter(Order.created_at >= start).scalar()
    total_revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.created_at >= start, Order.payment_status == "paid")
        .scalar()
    )
    low_stock_count = (
        db.session.query(func.count(Product.id))
        .filter(Product.status.in_(("low-stock", "out-of-stock")))
        .scalar()
    )
    active_users = db.session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar()
    return {
        "totalOrders": total_orders,
        "totalRevenue": _float(total_revenue),
        "lowStockCount": low_stock_count,
        "activeUsers": active_users,
    }


def recent_orders(limit: int = RECENT_ORDERS_LIMIT) -> list[dict]:
    orders = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
    return [o.to_summary() for o in orders]


def top_products(start: datetime, limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    total_quantity = func.sum(OrderItem.quantity).label("total_quantity")
    rows = (
        db.session.query(
            OrderItem.product_name,
            total_quantity,
            func.sum(OrderItem.total_price).label("total_revenue"),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.created_at >= start)
        .group_by(OrderItem.product_name)
        .order_by(total_quantity.desc(), OrderItem.product_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "productName": row.product_name,
            "totalQuantity": int(row.total_quantity or 0),
            "totalRevenue": _float(row.total_revenue),
        }
        for row in rows
    ]


def category_distribution() -> list[dict]:
    count = func.count(Product.id).label("count")
    rows = (
        db.session.query(
            Product.category,
            count,
            func.sum(Product.current_stock * Product.unit_price).label("total_value"),
        )
        .group_by(Product.category)
        .order_by(count.desc(), Product.category.asc())
        .all()
    )
    return [
        {"category": row.category, "count": row.count, "totalValue": _float(row.total_value)}
        for row in rows
    ]


def order_status_distribution(start: datetime) -> list[dict]:
    rows = (
        db.session.query(Order.status, func.count(Order.id).label("count"))
        .filter(Order.created_at >= start)
        .group_by(Order.status)
        .order_by(Order.status.asc())
        .all()
    )
    return [{"status": row.status, "count": row.count} for row in rows]


def daily_revenue(start: datetime) -> list[dict]:
    day = func.date(Order.created_at).label("day")
    rows = (
        db.session.query(
            day,
            func.sum(Order.total_amount).label("revenue"),
            func.count(Order.id).label("orders"),
        )
        .filter(Order.created_at >= start, Order.payment_status == "paid")
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    return [
        {"date": str(row.day), "revenue": _float(row.revenue), "orders": row.orders}
        for row in rows
    ]


def dashboard(period_days: int) -> dict:
    """
    Everything the dashboard shows for the last period_days days.

    No partial results: any failing query propagates.
    """
    start = days_ago(period_days)
    return {
        "overview": overview(start),
        "recentOrders": recent_orders(),
        "topProducts": top_products(start),
        "categoryDistribution": category_distribution(),
        "orderStatusDistribution": order_status_distribution(start),
        "dailyRevenue": daily_revenue(start),
    }
