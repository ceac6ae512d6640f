# backend/gestimmo/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .middleware.request_id import get_request_id
from .services.error_messages import translate_error_message

log = logging.getLogger("gestimmo.errors")

# Postgres SQLSTATE -> HTTP status
SQLSTATE_STATUS = {
    "23505": 409,  # unique_violation
    "42501": 403,  # insufficient_privilege
    "P0001": 400,  # raise_exception
}

UNIQUE_VIOLATION_MESSAGE = "Duplicate value violates a unique constraint"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or "-"


def error_payload(message: object, status_code: int, request_id: str) -> dict:
    return {
        "error": {
            "message": translate_error_message(message, status_code),
            "status": int(status_code),
            "request_id": request_id,
        }
    }


def error_response(request: Request, status_code: int, message: object, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_payload(message, status_code, _request_id(request)),
        headers=headers,
    )


def sqlstate_of(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return str(code)
    # SQLite carries no SQLSTATE; recognise its unique-constraint wording.
    if "unique constraint failed" in str(orig or exc).lower():
        return "23505"
    return None


def status_for_db_error(exc: DBAPIError) -> int:
    code = sqlstate_of(exc)
    if code in SQLSTATE_STATUS:
        return SQLSTATE_STATUS[code]
    if isinstance(exc, IntegrityError):
        return 400
    return 500


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_exc(request: Request, exc: StarletteHTTPException):
        return error_response(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(x) for x in first.get("loc", ()) if x != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg") or "")
        return error_response(request, 422, message)

    @app.exception_handler(DBAPIError)
    async def _db_exc(request: Request, exc: DBAPIError):
        status_code = status_for_db_error(exc)
        if status_code >= 500:
            log.exception("database error")
            return error_response(request, status_code, "")
        if status_code == 409:
            return error_response(request, status_code, UNIQUE_VIOLATION_MESSAGE)
        if status_code == 403:
            return error_response(request, status_code, "Permission denied")
        return error_response(request, status_code, str(getattr(exc, "orig", exc)))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("unhandled error")
        return error_response(request, 500, "")
