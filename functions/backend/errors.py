"""
Error type raised by handlers and the JSON bodies it renders to.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INVALID_REQUEST_BODY = "Invalid request body"
METHOD_NOT_ALLOWED = "Method not allowed"


class ApiError(Exception):
    """An error answered as {"error": ..., **extra} with the given status."""

    def __init__(self, status_code: int, error: str, **extra):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.extra = extra

    def body(self) -> dict:
        return {"error": self.error, **self.extra}


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.body())


async def _http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error = METHOD_NOT_ALLOWED if exc.status_code == 405 else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected body for %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": INVALID_REQUEST_BODY})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
