"""
Exception handlers.

Every failure leaves the API as {"success": false, "message": ...} with the
status code carried by the exception.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import QueryJamError, RateLimitExceeded

logger = logging.getLogger(__name__)


async def queryjam_error_handler(request: Request, exc: QueryJamError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")

    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(int(exc.retry_after))}

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"] if part != "body")
        errors.append(f"{loc}: {err['msg']}" if loc else err["msg"])

    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "; ".join(errors), "errors": errors},
    )


def install_error_handlers(app: FastAPI):
    app.add_exception_handler(QueryJamError, queryjam_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
