# backend/gestimmo/middleware/realtime_mutations.py
from __future__ import annotations

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .structured_logging import actor_id_from

log = logging.getLogger("gestimmo.realtime")

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
API_PREFIXES = ("/api/web/", "/api/mobile/", "/api/")


def entity_from_path(path: str) -> str:
    """
    /api/web/contracts/12/accept -> "contracts"
    /api/payments/3              -> "payments"
    """
    rest = path
    for prefix in API_PREFIXES:
        if path.startswith(prefix):
            rest = path[len(prefix):]
            break
    segments = [s for s in rest.split("/") if s]
    return segments[0] if segments else ""


class RealtimeMutationMiddleware(BaseHTTPMiddleware):
    """Announces successful writes on the event bus so open dashboards can refresh."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if request.method not in MUTATING_METHODS or response.status_code >= 400:
            return response

        bus = getattr(request.app.state, "event_bus", None)
        if bus is None:
            return response

        try:
            bus.publish(
                {
                    "action": request.method,
                    "entity": entity_from_path(request.url.path),
                    "path": request.url.path,
                    "status": response.status_code,
                    "actor_id": actor_id_from(request),
                }
            )
        except Exception:
            # Fire-and-forget: never turn a committed write into an error.
            log.exception("realtime publish failed")
        return response
