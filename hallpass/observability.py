from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .errors import HallPassError


class RequestTimingLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that measures request processing time and logs concise request/response info.

    Adds an 'X-Process-Time-Ms' header on responses to aid in quick diagnostics.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("request")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Process-Time-Ms"] = str(duration_ms)

        client_ip = request.client.host if request.client else "?"
        self.logger.info(
            "method=%s path=%s status=%s duration_ms=%s ip=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip,
        )
        return response


def _error_payload(request: Request, status: int, kind: str, message: str, **extra) -> dict:
    return {
        "ok": False,
        "error": {
            "status": status,
            "kind": kind,
            "message": message,
            "path": request.url.path,
            **extra,
        },
    }


def add_exception_handlers(app: FastAPI) -> None:
    """Register consistent error payload shapes for domain, HTTP and generic exceptions."""

    @app.exception_handler(HallPassError)
    async def hallpass_error_handler(request: Request, exc: HallPassError):
        if exc.status_code >= 500:
            # Store faults are logged where they happen; never echo their details
            payload = _error_payload(request, exc.status_code, exc.kind, "Internal server error")
        else:
            payload = _error_payload(request, exc.status_code, exc.kind, exc.message, **exc.extra)
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        payload = _error_payload(
            request, 422, "validation", "Invalid request", details=jsonable_encoder(exc.errors())
        )
        return JSONResponse(status_code=422, content=payload)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else ""
        payload = _error_payload(request, exc.status_code, "http", message)
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logging.getLogger("error").exception("Unhandled exception: %s", exc)
        payload = _error_payload(request, 500, "internal", "Internal server error")
        return JSONResponse(status_code=500, content=payload)
