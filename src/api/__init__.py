"""
Property Registry API Package.

Flask host for the property registry. Supplies the caller (X-Caller-Id),
the logical clock, serialized execution and persistence, and maps registry
rejections onto HTTP responses.

Blueprints:
- identities: identity registry and attributes
- assets: asset registry and ownership history
- attestations: attestation ledger and claim types
- admin: administration handover and overview
- monitoring: health and metrics
"""

import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify

from monitoring import configure_logging, setup_request_logging
from registry_errors import RegistryError
from storage import StorageBackend

from api.admin import admin_bp
from api.assets import assets_bp
from api.attestations import attestations_bp
from api.identities import identities_bp
from api.monitoring import monitoring_bp
from api.state import init_state
from api.utils import status_for_error

logger = logging.getLogger(__name__)

# Tuple format: (blueprint, url_prefix)
ALL_BLUEPRINTS = [
    (identities_bp, ""),
    (assets_bp, ""),
    (attestations_bp, ""),
    (admin_bp, ""),
    (monitoring_bp, ""),
]


def register_blueprints(app: Flask) -> None:
    for blueprint, url_prefix in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=url_prefix)


def create_app(storage: StorageBackend | None = None) -> Flask:
    """
    Build the Flask application.

    Args:
        storage: Storage backend; defaults to the environment-configured one

    Returns:
        Configured Flask app with shared registry state loaded
    """
    load_dotenv()

    app = Flask(__name__)
    app.json.sort_keys = False

    init_state(storage)
    register_blueprints(app)
    setup_request_logging(app)

    @app.errorhandler(RegistryError)
    def handle_registry_error(error: RegistryError):
        body = error.to_dict()
        return jsonify(body), status_for_error(error)

    return app


def run_server(host: str | None = None, port: int | None = None, debug: bool | None = None) -> None:
    """Configure logging from the environment and serve the API."""
    load_dotenv()
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    host = host or os.getenv("HOST", "0.0.0.0")
    port = port or int(os.getenv("PORT", "5000"))
    if debug is None:
        debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    app = create_app()
    logger.info("Starting property registry API on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug)
