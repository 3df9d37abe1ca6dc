"""Map core errors to HTTP responses.

Every error body has the same shape::

    {"error": "<fixed message>", "details": [...]}

``details`` is only populated for InvalidRequest (one entry per rejected
parameter segment) and never contains raw request text.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tablegate.core.errors import (
    DatabaseError,
    Forbidden,
    InvalidRequest,
    PermissionCheckFailed,
    RecordNotFound,
    RequestCancelled,
    TableGateError,
    UnknownTable,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[TableGateError], int] = {
    UnknownTable: 404,
    RecordNotFound: 404,
    Forbidden: 403,
    InvalidRequest: 400,
    PermissionCheckFailed: 500,
    DatabaseError: 500,
    RequestCancelled: 504,
}


def error_body(message: str, details: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {"error": message, "details": details or []}


def status_for(exc: TableGateError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


async def tablegate_error_handler(request: Request, exc: TableGateError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500 and status != 504:
        logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
    elif status == 504:
        logger.warning("%s %s cancelled", request.method, request.url.path)

    details = [e.to_dict() for e in exc.errors] if isinstance(exc, InvalidRequest) else []
    return JSONResponse(status_code=status, content=error_body(exc.message, details))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "param": ".".join(str(part) for part in err.get("loc", ())),
            "index": index,
            "reason": err.get("type", "invalid"),
            "field": None,
        }
        for index, err in enumerate(exc.errors())
    ]
    return JSONResponse(status_code=400, content=error_body("Invalid request body", details))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TableGateError, tablegate_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
