"""Health check blueprint."""

from flask import Blueprint, Response, current_app, jsonify

from cashcast import __version__

health_bp = Blueprint("health", __name__)


@health_bp.route("/healthz")
def health_check() -> Response:
    """Health check endpoint.

    Returns:
        JSON response with status, service name and version
    """
    return jsonify(
        {
            "status": "ok",
            "service": "cashcast",
            "version": __version__,
            "testing": bool(current_app.config.get("TESTING")),
        }
    )
