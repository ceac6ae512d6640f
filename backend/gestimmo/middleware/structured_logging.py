# backend/gestimmo/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("gestimmo.request")

# Noise from health checks and the long-lived stream.
QUIET_PATHS = frozenset({"/health"})


def actor_id_from(request: Request) -> int | None:
    # Set by the auth dependencies once the token has been verified; guests are id 0.
    principal = getattr(request.state, "principal", None)
    user_id = getattr(principal, "user_id", None)
    return user_id or None


def actor_role_from(request: Request) -> str | None:
    role = getattr(getattr(request.state, "principal", None), "role", None)
    return getattr(role, "value", role)


def surface_of(path: str) -> str:
    """web | mobile | public | api | other, used to split dashboards by client."""
    for surface in ("web", "mobile", "public"):
        if path.startswith(f"/api/{surface}/") or path == f"/api/{surface}":
            return surface
    return "api" if path.startswith("/api/") else "other"


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """One `http_request` line per request; 5xx lines are logged as errors."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            path = request.url.path
            if path not in QUIET_PATHS:
                log.log(
                    logging.ERROR if status_code >= 500 else logging.INFO,
                    "http_request",
                    extra={
                        "method": request.method,
                        "path": path,
                        "surface": surface_of(path),
                        "status_code": status_code,
                        "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
                        "actor_id": actor_id_from(request),
                        "role": actor_role_from(request),
                    },
                )
