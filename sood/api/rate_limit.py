"""Fixed-window per-client request limiting."""

import math
import time
from dataclasses import dataclass

from fastapi import HTTPException, Request

DEFAULT_RATE_LIMIT = 100       # requests
DEFAULT_WINDOW = 15 * 60.0     # seconds


@dataclass
class RateLimitEntry:
    last_reset: float
    count: int


class RateLimitService:
    def __init__(self, limit: int = DEFAULT_RATE_LIMIT, window: float = DEFAULT_WINDOW, trust_proxy: bool = True):
        self.limit = limit
        self.window = window
        self.trust_proxy = trust_proxy
        self._store: dict[str, RateLimitEntry] = {}

    def client_key(self, request: Request) -> str:
        if self.trust_proxy:
            forwarded = request.headers.get("x-forwarded-for", "")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def check(self, key: str, now: float | None = None) -> None:
        now = time.time() if now is None else now
        entry = self._store.get(key)
        if not entry or now - entry.last_reset >= self.window:
            entry = RateLimitEntry(last_reset=now, count=0)
            self._purge(now)

        if entry.count >= self.limit:
            retry_after = max(1, math.ceil(entry.last_reset + self.window - now))
            raise HTTPException(
                status_code=429,
                detail={"error": "Too many requests, please try again later."},
                headers={"Retry-After": str(retry_after)},
            )

        entry.count += 1
        self._store[key] = entry

    def _purge(self, now: float) -> None:
        expired = [k for k, e in self._store.items() if now - e.last_reset >= self.window]
        for k in expired:
            del self._store[k]


_limiter = RateLimitService()


def get_rate_limiter() -> RateLimitService:
    return _limiter


def set_rate_limiter(limiter: RateLimitService) -> None:
    global _limiter
    _limiter = limiter


async def enforce_rate_limit(request: Request) -> None:
    limiter = get_rate_limiter()
    limiter.check(limiter.client_key(request))
