# Overview: Maps domain exceptions raised by the services to JSON error responses.

from flask import jsonify

from ..validation import ValidationError, NotFoundError, ConflictError, InvalidState
from ..services.concurrency import ConcurrencyConflict
from ..services.inventory_service import InsufficientStock


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def validation_error(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(NotFoundError)
    def not_found_error(error):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(ConflictError)
    def conflict_error(error):
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(InvalidState)
    def invalid_state_error(error):
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(InsufficientStock)
    def insufficient_stock_error(error):
        return jsonify({"error": str(error), "details": error.details}), 409

    @app.errorhandler(ConcurrencyConflict)
    def concurrency_error(error):
        app.logger.warning("Request abandoned after concurrency retries: %s", error)
        return jsonify({"error": "The store is busy, please retry"}), 503

    @app.errorhandler(404)
    def route_not_found(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_server_error(error):
        app.logger.error("Internal Server Error: %s", error, exc_info=True)
        return jsonify({"error": "Internal server error"}), 500
