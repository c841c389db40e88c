"""Sliding-window rate limiting with ``X-RateLimit-*`` headers."""
from dataclasses import dataclass
from fastapi import Request, Response
from typing import Callable, Dict, List, Tuple
import asyncio
import math
import time

from .config import settings
from .exceptions import RateLimitExceededError


@dataclass
class RateLimitStatus:
    limit: int
    remaining: int
    reset_at: float
    exceeded: bool

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if self.exceeded:
            headers["Retry-After"] = str(max(1, math.ceil(self.reset_at - time.time())))
        return headers


class RateLimiter:
    # Idle keys are swept once every this many hits
    PRUNE_EVERY = 1000

    def __init__(self):
        self.requests: Dict[str, List[float]] = {}
        self._windows: Dict[str, int] = {}
        self._hits = 0
        self._lock = asyncio.Lock()

    async def hit(self, key: str, max_requests: int, window: int) -> RateLimitStatus:
        """Record a request for ``key`` unless the window is already full"""
        now = time.time()
        async with self._lock:
            # Clean old requests
            timestamps = [t for t in self.requests.get(key, []) if now - t < window]
            exceeded = len(timestamps) >= max_requests
            if not exceeded:
                timestamps.append(now)
            self.requests[key] = timestamps
            self._windows[key] = window

            self._hits += 1
            if self._hits >= self.PRUNE_EVERY:
                self._hits = 0
                self._prune(now)

        reset_at = (timestamps[0] if timestamps else now) + window
        return RateLimitStatus(
            limit=max_requests,
            remaining=max(0, max_requests - len(timestamps)),
            reset_at=reset_at,
            exceeded=exceeded,
        )

    def _prune(self, now: float):
        """Drop keys whose newest request has left its window"""
        idle = [
            key for key, timestamps in self.requests.items()
            if not timestamps or now - timestamps[-1] >= self._windows.get(key, 0)
        ]
        for key in idle:
            del self.requests[key]
            self._windows.pop(key, None)

    def reset(self):
        self.requests.clear()
        self._windows.clear()
        self._hits = 0

rate_limiter = RateLimiter()


def bucket_limits(bucket: str) -> Tuple[int, int]:
    limits = {
        "auth": (settings.rate_limit_auth, settings.rate_limit_auth_window),
        "password_reset": (settings.rate_limit_password_reset, settings.rate_limit_password_reset_window),
        "standard": (settings.rate_limit_standard, settings.rate_limit_standard_window),
        "upload": (settings.rate_limit_upload, settings.rate_limit_upload_window),
    }
    return limits[bucket]


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit(bucket: str) -> Callable:
    """FastAPI dependency enforcing the named bucket for the calling client"""
    async def dependency(request: Request, response: Response):
        if not settings.rate_limit_enabled:
            return
        max_requests, window = bucket_limits(bucket)
        status = await rate_limiter.hit(f"{bucket}:{client_key(request)}", max_requests, window)
        if status.exceeded:
            raise RateLimitExceededError(status.headers())
        response.headers.update(status.headers())
    return dependency
