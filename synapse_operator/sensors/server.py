"""HTTP server for exposing Prometheus metrics.

Uses the prometheus_client HTTP server in a background thread so that the
operator event loop is never blocked.
"""

import logging
from threading import Thread
from prometheus_client import start_http_server

logger = logging.getLogger(__name__)


def start_metrics_server(port: int) -> None:
    """Start the Prometheus metrics HTTP server on ``0.0.0.0:port``."""
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        logger.error(f"Failed to start metrics server on port {port}: {e}")
        raise


def init_metrics_server(port: int) -> None:
    """Start the metrics server in a daemon thread so it doesn't block shutdown."""
    thread = Thread(target=start_metrics_server, args=(port,), daemon=True)
    thread.start()
    logger.info(f"Metrics server initialization complete (port: {port})")
