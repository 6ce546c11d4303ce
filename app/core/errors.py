# app/core/errors.py
"""
Error taxonomy for the proxy and the FastAPI handlers that render it.

Every failure a client can observe is a ``ProxyError`` subclass carrying the
HTTP status it maps to. Handlers always answer with JSON containing an
``error`` field; the public developer endpoint formats its own envelope.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logger import get_logger

logger = get_logger("ErrorHandlers")


class ProxyError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ProxyError):
    """Missing or malformed request body."""
    status_code = 400


class UpstreamError(ProxyError):
    """A provider call raised; ``details`` holds the provider's message."""
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(message, details)
        self.provider = provider


class EmptyResponseError(UpstreamError):
    """Provider answered without any choices."""


class BothProvidersFailedError(ProxyError):
    status_code = 500

    def __init__(self, primary_error: Exception, secondary_error: Exception):
        super().__init__(
            "Both primary and secondary providers failed",
            details=_message_of(primary_error),
        )
        self.primary_error = primary_error
        self.secondary_error = secondary_error


class RateLimitExceeded(ProxyError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class UploadTooLargeError(ProxyError):
    status_code = 413


def _message_of(error: Exception) -> str:
    if isinstance(error, UpstreamError) and error.details:
        return error.details
    if isinstance(error, ProxyError):
        return error.message
    return str(error)


def register_exception_handlers(app: FastAPI) -> None:
    """Install JSON error rendering for every failure path."""

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed | {exc.message} | {exc.details}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        content: dict[str, Any] = {"error": "Invalid request body", "details": details}
        if request.url.path.startswith("/api/v1/"):
            content = {"success": False, **content}
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # A known path with the wrong method is still an unmatched route
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
