"""
Monitoring and metrics infrastructure for the property registry.

This package provides:
- Metrics collection (counters, gauges, histograms)
- Structured logging with JSON output and redaction
- Request timing middleware

Usage:
    import logging

    from monitoring import metrics

    metrics.increment("registry_operations_total", labels={"operation": "register-asset"})
    logger = logging.getLogger(__name__)
"""

from monitoring.logging import LoggingContext, configure_logging
from monitoring.metrics import MetricsCollector, metrics
from monitoring.middleware import setup_request_logging

__all__ = [
    "LoggingContext",
    "MetricsCollector",
    "metrics",
    "configure_logging",
    "setup_request_logging",
]
