"""Error handlers for the application. Every error is rendered as JSON."""
import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from werkzeug.http import HTTP_STATUS_CODES

from storefront.extensions import db
from storefront.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised by route handlers to return a structured error response."""

    def __init__(self, status: int, message: str, details=None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.details = details


def error_response(status: int, message: str, details=None):
    body = {"error": HTTP_STATUS_CODES.get(status, "Error"), "message": message}
    if details is not None:
        body["errors"] = details
    return jsonify(body), status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return error_response(error.status, error.message, error.details)

    @app.errorhandler(ValueError)
    def handle_validation_error(error):
        db.session.rollback()
        return error_response(400, str(error))

    @app.errorhandler(ConflictError)
    def handle_conflict(error):
        db.session.rollback()
        return error_response(409, str(error))

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        logger.warning("Integrity error: %s", error.orig)
        return error_response(409, "The request conflicts with existing data")

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        messages = {
            401: "Authentication required",
            403: "Insufficient permissions",
            404: "Resource not found",
        }
        message = messages.get(error.code, error.description)
        # A custom description passed to abort() wins over the generic text
        if error.description and error.description != type(error).description:
            message = error.description
        return error_response(error.code, message)

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        db.session.rollback()
        # ALWAYS log the full error - the response never carries it
        logger.error("Unhandled exception: %s", error, exc_info=True)
        return error_response(500, "An unexpected error occurred")
