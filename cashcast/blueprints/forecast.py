"""
Forecast blueprint for cash-flow projections.

This module provides API endpoints for generating a forecast ledger and for
comparing a what-if scenario against the baseline.
"""

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from cashcast.services.forecast_service import ForecastService

forecast_bp = Blueprint("forecast", __name__, url_prefix="/api")


@forecast_bp.route("/forecast", methods=["POST"])
def create_forecast() -> Any:
    """Generate a forecast from the records in the request body.

    Returns:
        JSON response with the ledger, summary and breakdowns
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({"error": "Request body must be JSON"}), 400

    try:
        return jsonify(ForecastService().run_forecast(data)), 200
    except ValueError as e:
        return jsonify({"error": "Invalid request", "message": str(e)}), 400
    except Exception as e:
        current_app.logger.error(f"Error generating forecast: {str(e)}")
        return jsonify({"error": "Internal server error"}), 500


@forecast_bp.route("/forecast/scenario", methods=["POST"])
def create_scenario_forecast() -> Any:
    """Generate baseline and scenario forecasts from the request body.

    Returns:
        JSON response with both ledgers and the merged monthly breakdown
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({"error": "Request body must be JSON"}), 400

    try:
        return jsonify(ForecastService().run_scenario(data)), 200
    except ValueError as e:
        return jsonify({"error": "Invalid request", "message": str(e)}), 400
    except Exception as e:
        current_app.logger.error(f"Error generating scenario forecast: {str(e)}")
        return jsonify({"error": "Internal server error"}), 500
