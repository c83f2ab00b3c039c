# Overview: Flask API routes for analytics; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import analytics_service
from ..validation import ValidationError
from .errors import error_response


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("")
@require_auth
def dashboard_route():
    """
    Dashboard aggregates over the last `period` days (default 30).

    All-or-nothing: a failing sub-query fails the whole response.
    """
    try:
        period = analytics_service.parse_period(request.args.get("period"))
    except ValidationError as e:
        return error_response(str(e), 400)

    try:
        data = analytics_service.dashboard(period)
    except Exception:
        current_app.logger.exception("Failed to build analytics")
        return error_response("Failed to fetch analytics", 500)

    return jsonify({"success": True, "period": period, "data": data})
