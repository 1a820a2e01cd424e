import logging
from collections import defaultdict
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Mapping
from threading import RLock
from time import monotonic

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


logger = logging.getLogger(__name__)


class RouteRateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding-window rate limiter for selected GET routes.

    Each limited path has its own budget per client, so heavy endpoints
    (card rendering) can be throttled harder than cheap ones.
    """

    def __init__(
        self,
        app,
        limits: Mapping[str, int],
        window_seconds: int = 60,
    ) -> None:
        super().__init__(app)
        # Invalid config values (0 or negatives) fall back to 1.
        self.limits = {path: max(1, limit) for path, limit in limits.items()}
        self.window_seconds = max(1, window_seconds)
        # One queue of timestamps per (path, client) key.
        self._buckets: dict[tuple[str, str], deque[float]] = defaultdict(deque)
        self._lock = RLock()
        self._last_sweep: float | None = None

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        max_requests = self.limits.get(path)
        if request.method != "GET" or max_requests is None:
            return await call_next(request)

        client = self._client_ip(request)
        retry_after, remaining = self.acquire(path, client, max_requests, monotonic())
        if retry_after is not None:
            logger.info("Rate limit hit on %s for %s", path, client)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or "unknown"

        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()

        if request.client and request.client.host:
            return request.client.host

        return "unknown"

    def acquire(
        self, path: str, client: str, max_requests: int, now: float
    ) -> tuple[int | None, int]:
        """Record one request and return (retry_after, remaining).

        `retry_after` is None when the request is allowed.
        """

        with self._lock:
            self._sweep(now)
            key = (path, client)
            bucket = self._buckets[key]
            self._evict(bucket, now)

            if len(bucket) >= max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return retry_after, 0

            bucket.append(now)
            return None, max_requests - len(bucket)

    def _evict(self, bucket: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()

    def _sweep(self, now: float) -> None:
        # Client keys come from request headers, so idle ones must be dropped.
        last_sweep = self._last_sweep
        if last_sweep is not None and now - last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._buckets):
            bucket = self._buckets[key]
            self._evict(bucket, now)
            if not bucket:
                del self._buckets[key]
