"""JSON error handlers for the HTTP transport."""

import logging
from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from obsidian_metrics.config import HEALTH_PATH

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask, metrics_path: str) -> None:
    """Register JSON responses for unknown paths, bad methods and failures."""

    @app.errorhandler(404)
    def handle_not_found(error: HTTPException) -> Any:
        return jsonify({
            "error": "Not Found",
            "available_endpoints": [metrics_path, HEALTH_PATH],
        }), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error: HTTPException) -> Any:
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Any:
        if isinstance(error, HTTPException):
            return error

        logger.error("Metrics server error", exc_info=error)
        return jsonify({"error": "Internal Server Error"}), 500
