"""Health check and metrics endpoints for the operator."""

from __future__ import annotations

import threading
from typing import Any

from prometheus_client import make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Request, Response

_ready = threading.Event()


def set_ready(ready: bool = True) -> None:
    """Flip the readiness reported on /readyz."""
    if ready:
        _ready.set()
    else:
        _ready.clear()


def is_ready() -> bool:
    return _ready.is_set()


def _readiness_response() -> Response:
    if is_ready():
        return Response('{"status":"ready"}', mimetype="application/json", status=200)
    return Response('{"status":"starting"}', mimetype="application/json", status=503)


def health_check_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
    """WSGI application for the /healthz and /readyz endpoints."""
    request = Request(environ)
    path = request.path

    if path == "/healthz":
        response = Response('{"status":"ok"}', mimetype="application/json", status=200)
    elif path == "/readyz":
        response = _readiness_response()
    else:
        response = Response('{"error":"not found"}', mimetype="application/json", status=404)

    return response(environ, start_response)


def create_combined_wsgi_app() -> Any:
    """Create a WSGI app that serves health checks and delegates everything else to prometheus."""
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        path = environ.get("PATH_INFO", "")
        if path in ("/healthz", "/readyz"):
            return health_check_app(environ, start_response)
        return metrics_app(environ, start_response)

    return combined_app


def start_metrics_server(port: int) -> BaseWSGIServer:
    """Serve /metrics, /healthz and /readyz on ``port`` from a daemon thread."""
    server = make_server("", port, create_combined_wsgi_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="metrics-server", daemon=True)
    thread.start()
    return server
