# backend/gestimmo/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids end up in logs and error bodies; keep them short and printable.
_VALID_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")

_request_id: ContextVar[str | None] = ContextVar("gestimmo_request_id", default=None)


def get_request_id() -> str | None:
    return _request_id.get()


def new_request_id() -> str:
    return uuid.uuid4().hex


@contextmanager
def bound_request_id(rid: str) -> Iterator[str]:
    """Bind an id outside HTTP (Celery tasks, CLI) so log lines can be correlated."""
    token = _request_id.set(rid)
    try:
        yield rid
    finally:
        _request_id.reset(token)


def incoming_request_id(request: Request) -> str:
    # Starlette headers are case-insensitive, so X-Request-Id matches too.
    raw = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return raw if _VALID_ID.match(raw) else new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Echoes or assigns X-Request-ID; the error envelope reads it from request.state."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = incoming_request_id(request)
        request.state.request_id = rid
        with bound_request_id(rid):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
