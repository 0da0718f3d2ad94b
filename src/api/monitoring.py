"""
Monitoring and metrics API endpoints.

This blueprint provides:
- /metrics: Prometheus-compatible metrics endpoint
- /metrics/json: JSON format metrics
- /health: Basic health check
- /health/live: Liveness check
- /health/ready: Readiness check
"""

import logging
import os
import time
from importlib.metadata import PackageNotFoundError, version

from flask import Blueprint, Response, jsonify

from monitoring import metrics
from storage import StorageError

from .state import get_statistics, get_storage

logger = logging.getLogger(__name__)

monitoring_bp = Blueprint("monitoring", __name__)

_startup_time = time.time()


@monitoring_bp.route("/metrics", methods=["GET"])
def prometheus_metrics():
    _update_dynamic_metrics()
    return Response(metrics.to_prometheus(), mimetype="text/plain; charset=utf-8")


@monitoring_bp.route("/metrics/json", methods=["GET"])
def json_metrics():
    _update_dynamic_metrics()
    return jsonify(metrics.get_all())


@monitoring_bp.route("/health", methods=["GET"])
def health():
    """
    Basic health check endpoint.

    Returns service status and key statistics.
    """
    return jsonify({
        "status": "healthy",
        "service": "Property Registry API",
        "version": _get_version(),
        "uptime_seconds": time.time() - _startup_time,
        "checks": {
            "registry": {"status": "ok", **get_statistics()},
            "storage": _check_storage(),
        },
        "environment": {
            "storage_backend": os.getenv("STORAGE_BACKEND", "json"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        },
    })


@monitoring_bp.route("/health/live", methods=["GET"])
def liveness():
    """Returns 200 while the process is running."""
    return jsonify({"status": "alive"})


@monitoring_bp.route("/health/ready", methods=["GET"])
def readiness():
    """Returns 200 if storage is available to persist mutations."""
    storage = _check_storage()
    if not storage["available"]:
        return jsonify({"status": "not_ready", "issues": [f"storage: {storage['status']}"]}), 503
    return jsonify({"status": "ready"})


def _get_version() -> str:
    try:
        return version("property-registry")
    except PackageNotFoundError:
        return "0.1.0"


def _check_storage() -> dict:
    try:
        storage = get_storage()
        available = storage.is_available()
    except StorageError as e:
        logger.warning("Storage check failed: %s", e)
        return {"status": "error", "available": False, "error": str(e)}

    return {
        "status": "ok" if available else "degraded",
        "available": available,
        "backend": storage.__class__.__name__,
    }


def _update_dynamic_metrics() -> None:
    metrics.set_gauge("storage_available", 1 if _check_storage()["available"] else 0)
