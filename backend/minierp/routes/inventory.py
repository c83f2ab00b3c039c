# Overview: Flask API routes for inventory (catalog) operations; parses input and returns JSON responses.

# backend/minierp/routes/inventory.py
"""
Catalog routes.

SECURITY: All routes require authentication.
- Read operations: any role
- Create/update: admin or manager
- Delete: admin
"""
import math

from flask import Blueprint, request, jsonify, g, current_app

from ..models import Product, PRIVILEGED_ROLES, PRODUCT_STATUSES
from ..services import products_service
from ..services.products_service import ProductFilter
from ..services.permission_service import PermissionDeniedError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_choice_arg,
    parse_page_args,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_roles
from .errors import error_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "category", "description",
        "current_stock", "reorder_level", "reorder_quantity",
        "unit_price", "supplier", "location", "status",
    },
    required_on_create={"name", "sku", "category", "unit_price", "supplier", "location"},
    field_aliases={
        "currentStock": "current_stock",
        "reorderLevel": "reorder_level",
        "reorderQuantity": "reorder_quantity",
        "unitPrice": "unit_price",
    },
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


@inventory_bp.get("")
@require_auth
def list_products_route():
    """
    List products, newest first.

    Query params:
    - page: int (default 1)
    - limit: int (default 20, max 100)
    - category, status: exact match
    - search: case-insensitive substring of name, SKU or supplier
    """
    try:
        page, limit = parse_page_args(request.args.get("page"), request.args.get("limit"))
        filters = ProductFilter(
            category=request.args.get("category") or None,
            status=parse_choice_arg("status", request.args.get("status"), PRODUCT_STATUSES),
            search=request.args.get("search") or None,
        )
        result = products_service.list_products(filters, page=page, limit=limit)
    except ValidationError as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return error_response("Failed to fetch products", 500)

    return jsonify({
        "success": True,
        "data": result["items"],
        "pagination": pagination_meta(page, limit, result["total"]),
    })


@inventory_bp.post("")
@require_auth
@require_roles(*PRIVILEGED_ROLES)
def create_product_route():
    """Create a new product (admin or manager)."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch, identity=g.identity)
    except ValidationError as e:
        return error_response(str(e), 400)
    except ConflictError as e:
        return error_response(str(e), 409)
    except PermissionDeniedError as e:
        return error_response(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return error_response("Failed to create product", 500)

    return jsonify({"success": True, "message": "Product created successfully", "data": created}), 201


@inventory_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return error_response(str(e), 404)
    return jsonify({"success": True, "data": product})


@inventory_bp.put("/<int:product_id>")
@require_auth
@require_roles(*PRIVILEGED_ROLES)
def update_product_route(product_id: int):
    """Partially update a product (admin or manager); status is recomputed."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch, identity=g.identity)
    except ValidationError as e:
        return error_response(str(e), 400)
    except NotFoundError as e:
        return error_response(str(e), 404)
    except ConflictError as e:
        return error_response(str(e), 409)
    except PermissionDeniedError as e:
        return error_response(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return error_response("Failed to update product", 500)

    return jsonify({"success": True, "message": "Product updated successfully", "data": updated}), 200


@inventory_bp.delete("/<int:product_id>")
@require_auth
@require_roles("admin")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id, identity=g.identity)
    except NotFoundError as e:
        return error_response(str(e), 404)
    except PermissionDeniedError as e:
        return error_response(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return error_response("Failed to delete product", 500)

    return jsonify({"success": True, "message": "Product deleted successfully"}), 200
