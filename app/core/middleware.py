from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.errors import RateLimitExceeded, UploadTooLargeError
from app.core.logger import get_logger
from pkg.rate_limit.store import FixedWindowCounterStore

logger = get_logger("Middleware")

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."
BODY_TOO_LARGE_MESSAGE = "Request body too large"

# Room for multipart boundaries and part headers around an uploaded file
MULTIPART_OVERHEAD_BYTES = 64 * 1024

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
}


def client_address(request: Request, trust_forwarded_for: bool = False) -> str:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limit per client address on every /api/ route."""

    def __init__(self, app, store: FixedWindowCounterStore, prefix: str = "/api/", trust_forwarded_for: bool = False):
        super().__init__(app)
        self.store = store
        self.prefix = prefix
        self.trust_forwarded_for = trust_forwarded_for

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.prefix):
            return await call_next(request)

        address = client_address(request, self.trust_forwarded_for)
        decision = self.store.hit(address)
        headers = {
            "RateLimit-Limit": str(decision.limit),
            "RateLimit-Remaining": str(decision.remaining),
            "RateLimit-Reset": str(decision.reset_after),
        }
        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {address} on {request.url.path}")
            exc = RateLimitExceeded(RATE_LIMIT_MESSAGE, retry_after=decision.reset_after)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_body(),
                headers={**headers, "Retry-After": str(exc.retry_after)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class BodySizeLimitMiddleware:
    """
    Refuse request bodies larger than ``max_bytes`` with 413.

    A declared ``Content-Length`` over the cap is rejected before the route
    runs. Bodies without one (chunked) are counted as they are received and
    the read fails as soon as the cap is passed. Multipart bodies are capped
    at ``max_upload_bytes`` plus framing instead.
    """

    def __init__(self, app: ASGIApp, max_bytes: int, max_upload_bytes: int = 0):
        self.app = app
        self.max_bytes = max_bytes
        self.max_upload_bytes = max_upload_bytes

    def _limit_for(self, headers: Headers) -> int:
        if headers.get("content-type", "").startswith("multipart/form-data"):
            return max(self.max_bytes, self.max_upload_bytes + MULTIPART_OVERHEAD_BYTES)
        return self.max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        limit = self._limit_for(headers)
        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            logger.warning(f"Rejected {scope['path']}: declared body of {declared} bytes exceeds {limit}")
            await self._reject(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    # FastAPI re-raises HTTPException from body parsing
                    raise StarletteHTTPException(status_code=413, detail=BODY_TOO_LARGE_MESSAGE)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except StarletteHTTPException as exc:
            if exc.status_code != 413 or response_started:
                raise
            logger.warning(f"Rejected {scope['path']}: body exceeded {limit} bytes while streaming")
            await self._reject(scope, receive, send)

    @staticmethod
    async def _reject(scope: Scope, receive: Receive, send: Send) -> None:
        exc = UploadTooLargeError(BODY_TOO_LARGE_MESSAGE)
        response = JSONResponse(status_code=exc.status_code, content=exc.to_body())
        await response(scope, receive, send)
