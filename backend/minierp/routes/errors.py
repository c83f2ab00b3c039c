# Overview: App-wide JSON error handlers; no HTML error pages or stack traces reach clients.

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


def error_response(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return error_response(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        current_app.logger.exception("Unhandled error")
        return error_response("Internal server error", 500)
