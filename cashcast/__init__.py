"""Cashcast Flask Application Factory."""

import logging
from typing import Optional

from flask import Flask

from cashcast.config import get_global_settings

__version__ = "0.1.0"


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config_name: Configuration name (development, testing, production)

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    # Configuration from Pydantic Settings
    settings = get_global_settings()
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["ENV"] = settings.flask_env
    app.config["DEBUG"] = settings.app_env == "development"
    app.config["TESTING"] = (config_name or settings.app_env) == "testing"

    logging.getLogger("cashcast").setLevel(settings.log_level)

    # Register blueprints
    from cashcast.blueprints.forecast import forecast_bp
    from cashcast.blueprints.health import health_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(forecast_bp)

    return app
