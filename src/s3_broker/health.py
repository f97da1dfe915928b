"""Health check endpoints and the combined WSGI app."""

from __future__ import annotations

import logging
from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.wrappers import Response

logger = logging.getLogger(__name__)


def create_combined_wsgi_app(
    broker_app: Callable[..., Any],
    ready_check: Callable[[], bool] | None = None,
) -> Callable[..., Any]:
    """Create a WSGI app serving health checks, metrics and the broker API.

    /healthz and /readyz are answered here, /metrics is delegated to
    prometheus_client and every other path goes to the broker app.

    Args:
        broker_app: WSGI app implementing the broker API
        ready_check: Returns True when backends are reachable

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> Any:
        """WSGI app that routes /healthz, /readyz and /metrics."""
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        elif path == "/readyz":
            if ready_check is None or ready_check():
                response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            else:
                response = Response('{"status":"not ready"}', mimetype="application/json", status=503)
            return response(environ, start_response)
        elif path == "/metrics":
            return metrics_app(environ, start_response)
        return broker_app(environ, start_response)

    return combined_app
