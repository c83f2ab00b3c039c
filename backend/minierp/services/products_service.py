# backend/minierp/services/products_service.py
"""
Catalog service: product CRUD, filtering and stock status upkeep.

Role checks happen here as well as in the routes, so the rules hold for any
caller (CLI, tests, other services):
- create/update require admin or manager
- delete requires admin
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, PRIVILEGED_ROLES
from ..validation import ConflictError, NotFoundError
from .concurrency import run_with_retry
from .permission_service import ADMIN_ONLY, require_role
from .token_service import Identity
from minierp.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "category", "description",
    "current_stock", "reorder_level", "reorder_quantity",
    "unit_price", "supplier", "location", "status",
}

# Applied on create before anything reaches the session
PRODUCT_DEFAULTS = {
    "description": None,
    "current_stock": 0,
    "reorder_level": 10,
    "reorder_quantity": 50,
    "status": "in-stock",
}


@dataclass(frozen=True)
class ProductFilter:
    category: str | None = None
    status: str | None = None
    search: str | None = None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_product_filter(query, filters: ProductFilter):
    if filters.category:
        query = query.filter(Product.category == filters.category)
    if filters.status:
        query = query.filter(Product.status == filters.status)
    if filters.search:
        pattern = f"%{_escape_like(filters.search.strip())}%"
        query = query.filter(or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.sku.ilike(pattern, escape="\\"),
            Product.supplier.ilike(pattern, escape="\\"),
        ))
    return query


def apply_product_patch(p: Product, patch: dict) -> None:
    previous_stock = p.current_stock or 0
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)
    if p.current_stock > previous_stock:
        p.last_restocked = utcnow()
    p.refresh_status()


def _sku_taken(sku: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def list_products(filters: ProductFilter, page: int = 1, limit: int = 20) -> dict:
    """
    Filtered, offset-paginated listing, newest first.

    Returns:
        Dict with 'items' (product dicts) and 'total' (matches before paging).
    """
    base_query = apply_product_filter(db.session.query(Product), filters)

    total = base_query.count()
    products = (
        base_query
        .order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"items": [p.to_dict() for p in products], "total": total}


def get_product(product_id: int) -> dict:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p.to_dict()


def create_product(*, patch: dict, identity: Identity) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        PermissionDeniedError: caller is not admin/manager
        ConflictError: SKU already exists
    """
    require_role(identity, PRIVILEGED_ROLES)

    values = {**PRODUCT_DEFAULTS, **patch}
    if _sku_taken(values["sku"]):
        raise ConflictError("SKU already exists")

    p = Product(current_stock=0)
    apply_product_patch(p, values)

    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("SKU already exists")

    current_app.logger.info("Product created id=%s sku=%s by user=%s", p.id, p.sku, identity.user_id)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict, identity: Identity) -> dict:
    """
    Update a product and recompute its status.

    Raises:
        PermissionDeniedError: caller is not admin/manager
        NotFoundError: product does not exist
        ConflictError: new SKU already exists
    """
    require_role(identity, PRIVILEGED_ROLES)

    def _op():
        p = db.session.get(Product, product_id)
        if not p:
            raise NotFoundError("Product not found")

        # SKU uniqueness enforcement if changing SKU
        if "sku" in patch and patch["sku"] != p.sku and _sku_taken(patch["sku"], exclude_id=p.id):
            raise ConflictError("SKU already exists")

        apply_product_patch(p, patch)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("SKU already exists")
        return p.to_dict()

    return run_with_retry(_op)


def delete_product(*, product_id: int, identity: Identity) -> None:
    """
    Hard-delete a product. Existing orders keep their line snapshots.

    Raises:
        PermissionDeniedError: caller is not admin
        NotFoundError: product does not exist
    """
    require_role(identity, ADMIN_ONLY)

    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")

    sku = p.sku
    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Product deleted id=%s sku=%s by user=%s", product_id, sku, identity.user_id)
