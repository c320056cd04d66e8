"""
Centralized error handlers.

Maps errors to JSON for ``/api/`` requests and to rendered pages otherwise.

Error Handlers:
    - 404 / RecordNotFoundError: resource not found
    - 429: rate limit exceeded
    - 500: internal server error
    - SourceUnavailableError: backend unreachable, served as 503 and never cached
    - PocketBaseError: any other backend failure, served as 502
    - EnquiryValidationError: rejected enquiry, 400 with field errors
"""

import logging

from flask import Flask, Response, jsonify, render_template, request

from finwage.services.contact import EnquiryValidationError
from integrations.pocketbase.client import PocketBaseError, RecordNotFoundError, SourceUnavailableError

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def is_api_request() -> bool:
    return request.path.startswith('/api/')


def api_error_response(error: str, status_code: int, message: str | None = None) -> tuple[Response, int]:
    """
    Build a standard JSON error body.

    Args:
        error: Error label (e.g. "not_found", "source_unavailable").
        status_code: HTTP status.
        message: Optional human-readable detail.
    """
    response_data = {
        "success": False,
        "error": error,
        "status": status_code,
    }
    if message:
        response_data["message"] = message

    return jsonify(response_data), status_code


# =============================================================================
# REGISTRATION
# =============================================================================

def register_error_handlers(app: Flask) -> None:
    """Register every error handler on ``app``."""

    @app.errorhandler(404)
    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(e):
        if is_api_request():
            return api_error_response("not_found", 404, "Resource not found")
        return render_template('errors/404.html'), 404

    @app.errorhandler(EnquiryValidationError)
    def handle_enquiry_validation(e):
        return jsonify({
            "success": False,
            "message": "Validation failed",
            "errors": e.errors,
        }), 400

    @app.errorhandler(SourceUnavailableError)
    def handle_source_unavailable(e):
        logger.error(
            "Content source unavailable: %s",
            e,
            extra={"collection": e.collection, "path": request.path},
        )
        if is_api_request():
            return api_error_response(
                "source_unavailable",
                503,
                "Content backend is unavailable. Please try again later.",
            )
        return render_template('errors/503.html'), 503

    @app.errorhandler(PocketBaseError)
    def handle_backend_error(e):
        logger.error(
            "Content backend error: %s",
            e,
            extra={"collection": e.collection, "status": e.status_code, "path": request.path},
        )
        if is_api_request():
            return api_error_response("backend_error", 502, str(e))
        return render_template('errors/500.html'), 502

    @app.errorhandler(429)
    def handle_rate_limit(e):
        logger.warning("Rate limit exceeded: %s %s from %s", request.method, request.path, request.remote_addr)
        if is_api_request():
            return api_error_response(
                "rate_limited",
                429,
                "Too many requests. Please wait before trying again.",
            )
        return render_template('errors/429.html', retry_after=e.description), 429

    @app.errorhandler(500)
    def handle_internal_error(e):
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.path,
            exc_info=getattr(e, "original_exception", None),
        )
        if is_api_request():
            return api_error_response(
                "internal_error",
                500,
                "An unexpected error occurred. Please try again later.",
            )
        return render_template('errors/500.html'), 500
