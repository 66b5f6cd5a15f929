"""
Exception handlers — map every failure onto the JSON error envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import config
from core.errors import AppError, ProviderError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    body = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, ProviderError):
            logger.error(
                "%s %s — provider %s error: %s (%s)",
                request.method, request.url.path, exc.provider, exc.message, exc.details,
            )
        elif exc.status_code >= 500:
            logger.error("%s %s — %s", request.method, request.url.path, exc.message)
        else:
            logger.info(
                "%s %s — %d %s", request.method, request.url.path, exc.status_code, exc.message
            )
        return _envelope(exc.status_code, exc.error, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query")),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        return _envelope(
            status.HTTP_400_BAD_REQUEST,
            "Validation Error",
            "Request validation failed",
            details,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _envelope(404, "Not Found", f"Route {request.method}:{request.url.path} not found")
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            return _envelope(405, "Method Not Allowed", str(exc.detail))
        return _envelope(exc.status_code, "Error", str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if config.debug else "An unexpected error occurred"
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            message,
            {"requestId": getattr(request.state, "request_id", None)},
        )
