"""
Order workflow: validate availability, snapshot prices, persist the order
and take the stock out of the catalog as one unit of work.

WHY one transaction: the order row and every product decrement commit or
roll back together. Availability is checked up front for a clean error, and
re-enforced by a conditional decrement (UPDATE ... WHERE current_stock >= q)
so two orders racing for the last units cannot both succeed.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Order, OrderItem, Product, FINAL_ORDER_STATUSES
from ..validation import NotFoundError, OrderRequest, ValidationError, quantize_money
from .concurrency import lock_for_update, run_with_retry
from .permission_service import require_role
from .token_service import Identity


ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase
ORDER_NUMBER_ATTEMPTS = 5

# Order-number unique violations are retried along with lock/version conflicts
PLACE_ORDER_RETRY_ON = (OperationalError, StaleDataError, IntegrityError)


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds what the product has on hand."""
    def __init__(self, product: Product):
        super().__init__(f"Insufficient stock for {product.name}. Available: {product.current_stock}")
        self.product_id = product.id
        self.available = product.current_stock


@dataclass(frozen=True)
class OrderFilter:
    status: str | None = None
    payment_status: str | None = None


def _base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(ORDER_NUMBER_ALPHABET[rem])
        if value == 0:
            break
    return "".join(reversed(digits))


def generate_order_number() -> str:
    """ORD-<base36 millisecond timestamp>-<4 random base36 chars>, upper-case."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(4))
    return f"ORD-{stamp}-{suffix}"


def _unused_order_number() -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number()
        exists = db.session.query(Order.id).filter_by(order_number=candidate).first()
        if not exists:
            return candidate
    raise RuntimeError("Could not allocate a unique order number")


def decrement_stock(product_id: int, quantity: int) -> bool:
    """
    Take quantity units out of stock iff that many are on hand.

    Single conditional UPDATE, atomic per row. Returns False (and changes
    nothing) when the product is gone or short.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.current_stock >= quantity)
        .values(
            current_stock=Product.current_stock - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _requested_quantities(req: OrderRequest) -> dict[int, int]:
    totals: dict[int, int] = {}
    for line in req.items:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def _load_products(req: OrderRequest) -> dict[int, Product]:
    """Existence first for every line, then availability for every product."""
    products: dict[int, Product] = {}
    for line in req.items:
        if line.product_id in products:
            continue
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
        if not product:
            raise NotFoundError(f"Product {line.label or line.product_id} not found")
        products[line.product_id] = product

    for product_id, quantity in _requested_quantities(req).items():
        product = products[product_id]
        if product.current_stock < quantity:
            raise InsufficientStockError(product)

    return products


def _build_order(req: OrderRequest, products: dict[int, Product], identity: Identity) -> Order:
    items = []
    subtotal = Decimal("0.00")
    for i, line in enumerate(req.items, start=1):
        product = products[line.product_id]
        unit_price = quantize_money(product.unit_price)
        total_price = quantize_money(unit_price * line.quantity)
        subtotal += total_price
        items.append(OrderItem(
            line_number=i,
            product_id=product.id,
            product_name=product.name,
            sku=product.sku,
            quantity=line.quantity,
            unit_price=unit_price,
            total_price=total_price,
        ))

    return Order(
        order_number=_unused_order_number(),
        customer_name=req.customer.name,
        customer_email=req.customer.email,
        customer_phone=req.customer.phone,
        customer_address=req.customer.address,
        items=items,
        subtotal=subtotal,
        tax=req.tax,
        shipping_cost=req.shipping_cost,
        total_amount=subtotal + req.tax + req.shipping_cost,
        status=req.status,
        payment_status=req.payment_status,
        payment_method=req.payment_method,
        shipping_method=req.shipping_method,
        tracking_number=req.tracking_number,
        notes=req.notes,
        created_by_user_id=identity.user_id,
    )


def _take_stock(products: dict[int, Product], quantities: dict[int, int]) -> None:
    for product_id, quantity in quantities.items():
        if not decrement_stock(product_id, quantity):
            # Another order got there between the check and the decrement
            product = products[product_id]
            db.session.refresh(product)
            current_app.logger.warning(
                "Rejected decrement product=%s requested=%s available=%s",
                product_id, quantity, product.current_stock,
            )
            raise InsufficientStockError(product)

        product = products[product_id]
        db.session.refresh(product)
        product.refresh_status()
    db.session.flush()


def place_order(req: OrderRequest, identity: Identity) -> dict:
    """
    Create an order and decrement stock for every line.

    Raises:
        NotFoundError: a referenced product does not exist
        InsufficientStockError: not enough stock (nothing is persisted)
    """
    def _op():
        products = _load_products(req)
        order = _build_order(req, products, identity)
        db.session.add(order)
        db.session.flush()

        _take_stock(products, _requested_quantities(req))

        db.session.commit()
        return order

    order = run_with_retry(_op, retry_on=PLACE_ORDER_RETRY_ON)
    current_app.logger.info(
        "Order placed number=%s total=%s lines=%s by user=%s",
        order.order_number, order.total_amount, len(order.items), identity.user_id,
    )
    return order.to_dict()


def list_orders(filters: OrderFilter, page: int = 1, limit: int = 20) -> dict:
    query = db.session.query(Order)
    if filters.status:
        query = query.filter(Order.status == filters.status)
    if filters.payment_status:
        query = query.filter(Order.payment_status == filters.payment_status)

    total = query.count()
    orders = (
        query
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"items": [o.to_dict() for o in orders], "total": total}


def get_order(order_id: int) -> dict:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order.to_dict()


def update_order(*, order_id: int, patch: dict, identity: Identity) -> dict:
    """
    Move an order along (status, payment status, tracking, notes).

    Line items and amounts are never touched. delivered and cancelled are
    final: their status cannot change.
    """
    require_role(identity)

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")

        new_status = patch.get("status")
        if new_status and new_status != order.status and order.status in FINAL_ORDER_STATUSES:
            raise ValidationError(f"Cannot change status of a {order.status} order")

        for k, v in patch.items():
            setattr(order, k, v)
        db.session.commit()
        return order.to_dict()

    return run_with_retry(_op)
