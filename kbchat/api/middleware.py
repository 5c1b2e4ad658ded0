"""FastAPI middleware and exception handlers."""

import time
from typing import override

import structlog
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from kbchat.core.exceptions import AppError

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and responses."""

    # Skip logging for health checks and docs to reduce noise
    SKIP_PATHS = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}

    @override
    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        path = request.url.path

        if path in self.SKIP_PATHS:
            return await call_next(request)

        logger.info(
            "request_started",
            method=request.method,
            path=path,
            query=str(request.query_params) if request.query_params else None,
        )

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers["X-Process-Time-Ms"] = f"{duration_ms:.2f}"
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round(duration_ms, 2),
            )
            raise


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Last-resort handler for exceptions that escaped the route handlers."""

    @override
    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("unhandled_exception", path=request.url.path, error=str(e))

            if isinstance(e, AppError):
                return JSONResponse(status_code=e.status_code, content=e.to_dict())

            return JSONResponse(
                status_code=500,
                content={"error": {"code": "INTERNAL_ERROR", "message": str(e)}},
            )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors with their own status code."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log("app_error", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies as 400 in the application error format."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or None
    content = {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": first.get("msg", "Invalid request"),
        }
    }
    if field:
        content["error"]["details"] = {"field": field}
    return JSONResponse(status_code=400, content=content)
