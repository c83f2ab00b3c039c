# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""
Order routes.

SECURITY: All routes require authentication.
- Listing, reading and placing orders: any role
- Updating order progress: admin or manager
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import PRIVILEGED_ROLES, ORDER_STATUSES, PAYMENT_STATUSES
from ..services import order_service
from ..services.order_service import OrderFilter
from ..services.permission_service import PermissionDeniedError
from ..validation import (
    parse_order_payload,
    parse_order_update,
    parse_choice_arg,
    parse_page_args,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_roles
from .errors import error_response
from .inventory import pagination_meta


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    List orders, newest first.

    Query params: page, limit, status, paymentStatus
    """
    try:
        page, limit = parse_page_args(request.args.get("page"), request.args.get("limit"))
        filters = OrderFilter(
            status=parse_choice_arg("status", request.args.get("status"), ORDER_STATUSES),
            payment_status=parse_choice_arg(
                "paymentStatus", request.args.get("paymentStatus"), PAYMENT_STATUSES
            ),
        )
        result = order_service.list_orders(filters, page=page, limit=limit)
    except ValidationError as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return error_response("Failed to fetch orders", 500)

    return jsonify({
        "success": True,
        "data": result["items"],
        "pagination": pagination_meta(page, limit, result["total"]),
    })


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order.

    Body: {customer{name,email,phone,address}, items[{product, quantity}],
           paymentMethod, shippingMethod, tax?, shippingCost?, status?,
           paymentStatus?, trackingNumber?, notes?}

    400 on bad input or insufficient stock, 404 if a product is missing.
    Nothing is persisted unless the whole order succeeds.
    """
    payload = request.get_json(silent=True)

    try:
        order_request = parse_order_payload(payload)
        order = order_service.place_order(order_request, identity=g.identity)
    except ValidationError as e:
        return error_response(str(e), 400)
    except NotFoundError as e:
        return error_response(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return error_response("Failed to create order", 500)

    return jsonify({"success": True, "message": "Order created successfully", "data": order}), 201


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return error_response(str(e), 404)
    return jsonify({"success": True, "data": order})


@orders_bp.patch("/<int:order_id>")
@require_auth
@require_roles(*PRIVILEGED_ROLES)
def update_order_route(order_id: int):
    """Update status, paymentStatus, trackingNumber or notes."""
    payload = request.get_json(silent=True)

    try:
        patch = parse_order_update(payload)
        order = order_service.update_order(order_id=order_id, patch=patch, identity=g.identity)
    except ValidationError as e:
        return error_response(str(e), 400)
    except NotFoundError as e:
        return error_response(str(e), 404)
    except PermissionDeniedError as e:
        return error_response(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return error_response("Failed to update order", 500)

    return jsonify({"success": True, "message": "Order updated successfully", "data": order})
