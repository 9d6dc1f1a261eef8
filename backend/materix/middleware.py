"""HTTP middleware: request context with access logging, and rate limiting."""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from materix.errors import INTERNAL_ERROR_MESSAGE, error_response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, log it once, and answer crashes with a 500 envelope."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error on %s %s",
                request.method,
                request.url.path,
                extra={"properties": {"request_id": request_id}},
            )
            response = error_response(500, "internal_error", INTERNAL_ERROR_MESSAGE)

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "properties": {
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            },
        )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limit of ``requests`` per ``window_seconds`` per client address.

    Expired windows are swept every ``sweep_interval`` seconds.
    """

    def __init__(
        self,
        app,
        requests: int = 10,
        window_seconds: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60,
    ):
        super().__init__(app)
        self.requests = requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.sweep_interval = sweep_interval
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_sweep = clock()

    def _client_key(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.sweep_interval:
            return
        self._last_sweep = now
        expired = [key for key, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Dropped %d expired rate limit windows", len(expired))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        key = self._client_key(request)
        now = self.clock()
        self._sweep(now)
        window_start, count = self._windows.get(key, (now, 0))
        if now - window_start >= self.window_seconds:
            window_start, count = now, 0

        if count >= self.requests:
            retry_after = max(1, int(window_start + self.window_seconds - now + 0.999))
            logger.warning("Rate limit exceeded for %s", key)
            return error_response(
                429,
                "rate_limited",
                "rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

        self._windows[key] = (window_start, count + 1)
        return await call_next(request)
