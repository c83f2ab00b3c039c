# Overview: Flask API routes for the AI assistant; every route needs a bearer token.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import ai_service
from .errors import error_response


ai_bp = Blueprint("ai", __name__, url_prefix="/api/ai")


def _text(data: dict, key: str) -> str | None:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@ai_bp.post("/chat")
@require_auth
def chat_route():
    data = request.get_json(silent=True) or {}
    message = _text(data, "message")
    if not message:
        return error_response("Message is required", 400)

    response = ai_service.chat(message, _text(data, "context"))
    return jsonify({"success": True, "response": response})


@ai_bp.post("/generate-description")
@require_auth
def generate_description_route():
    data = request.get_json(silent=True) or {}
    product_name = _text(data, "productName")
    category = _text(data, "category")
    if not product_name or not category:
        return error_response("Product name and category are required", 400)

    description = ai_service.generate_product_description(product_name, category)
    return jsonify({"success": True, "description": description})


@ai_bp.get("/inventory-insights")
@require_auth
def inventory_insights_route():
    try:
        products = ai_service.lowest_stock_products()
    except Exception:
        current_app.logger.exception("Failed to load inventory for insights")
        return error_response("Failed to generate insights", 500)

    return jsonify({"success": True, "insights": ai_service.inventory_insights(products)})


@ai_bp.get("/order-insights")
@require_auth
def order_insights_route():
    try:
        orders = ai_service.latest_orders()
    except Exception:
        current_app.logger.exception("Failed to load orders for insights")
        return error_response("Failed to generate insights", 500)

    return jsonify({"success": True, "insights": ai_service.order_insights(orders)})
