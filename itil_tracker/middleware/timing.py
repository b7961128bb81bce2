"""
Request timing middleware.

Assigns a request id (honouring an incoming X-Request-ID), measures the
request and logs one line per response. Mutating requests also log the
store version they left behind.
"""

import logging
import time
import uuid

from flask import Flask, current_app, g, request

from itil_tracker.store import EXTENSION_KEY

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/api/v1/health"})
_MUTATING = frozenset({"POST", "PUT", "PATCH", "DELETE"})

SLOW_THRESHOLD_MS = 1000


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = g.get("request_start")
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path in _QUIET_PATHS:
            return response

        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 1),
            "remote_addr": request.remote_addr,
        }
        if request.method in _MUTATING:
            store = current_app.extensions.get(EXTENSION_KEY)
            if store is not None:
                extra["state_version"] = store.version

        if response.status_code >= 500:
            level = logging.ERROR
        elif duration_ms > SLOW_THRESHOLD_MS:
            level = logging.WARNING
        elif request.method in _MUTATING:
            level = logging.INFO
        else:
            level = logging.DEBUG
        logger.log(level, "%s %s -> %d (%.0fms)", request.method, request.path,
                   response.status_code, duration_ms, extra=extra)
        return response
