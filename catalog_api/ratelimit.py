import logging
import math
import threading
import time
from collections import defaultdict, deque

from fastapi import Request

from catalog_api.errors import TooManyRequests

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window request limiter keyed by client address.

    Used as a FastAPI dependency: ``Depends(limiter)``. Each limiter keeps its
    own window, so ``/api`` and ``/auth`` are counted separately.
    """

    def __init__(self, max_requests: int, window_seconds: int, message: str, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _prune(self, key: str, now: float):
        hits = self._hits[key]
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def _sweep(self, now: float):
        # drop clients that have been idle for a whole window
        for key in list(self._hits):
            self._prune(key, now)
        self._last_sweep = now

    def hit(self, key: str) -> float:
        """Record one request for ``key``; returns seconds to wait, 0 when admitted."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._prune(key, now)
            if len(hits) >= self.max_requests:
                return self.window_seconds - (now - hits[0])
            hits.append(now)
            self._hits[key] = hits
            return 0

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self):
        with self._lock:
            self._hits.clear()

    def __call__(self, request: Request):
        key = request.client.host if request.client else "unknown"
        wait = self.hit(key)
        if wait:
            retry_after = max(1, math.ceil(wait))
            logger.warning("Rate limit exceeded for %s on %s", key, request.url.path)
            raise TooManyRequests(
                self.message,
                headers={"Retry-After": str(retry_after)},
                extra={"retryAfter": retry_after},
            )


# ------------------------------------------------------------
# Router dependencies (limiters live on app.state)
# ------------------------------------------------------------

def limit_api(request: Request):
    request.app.state.api_limiter(request)


def limit_auth(request: Request):
    request.app.state.auth_limiter(request)
