"""
Rate limiting and resource protection middleware for FastAPI.

This module provides:
- Per-API-key rate limiting (requests per minute)
- Payload size enforcement

Rejections are JSO failure envelopes, like every other response.
"""

import hashlib
import os
import threading
import time
from typing import Optional

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from api_validation.public.responses import json_error


class RateLimitConfig:
    """Configuration for rate limiting and resource protection."""

    def __init__(self):
        # Rate limit per API key (requests per minute)
        self.rate_limit_per_minute = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))
        # Payload size limit
        self.max_request_payload_mb = int(os.getenv("MAX_REQUEST_PAYLOAD_MB", "10"))
        # Paths never limited
        self.excluded_paths = ["/health", "/docs", "/redoc", "/openapi.json"]


class InMemoryRateLimiter:
    """
    Simple in-memory sliding-window rate limiter (for single-instance deployment).
    For distributed deployments, use Redis.
    """

    def __init__(self, clock=time.monotonic):
        self.requests: dict[str, list[float]] = {}  # {api_key_id: [timestamp1, timestamp2, ...]}
        self._clock = clock
        self._lock = threading.Lock()
        self._next_sweep = clock()

    def _prune(self, api_key_id: str, window_seconds: int) -> list[float]:
        window_start = self._clock() - window_seconds
        kept = [ts for ts in self.requests.get(api_key_id, []) if ts > window_start]
        if kept:
            self.requests[api_key_id] = kept
        else:
            self.requests.pop(api_key_id, None)
        return kept

    def _sweep(self, window_seconds: int) -> None:
        # Drop keys with nothing left in the window, at most once per window.
        now = self._clock()
        if now < self._next_sweep:
            return
        window_start = now - window_seconds
        for key in [k for k, stamps in self.requests.items() if stamps[-1] <= window_start]:
            del self.requests[key]
        self._next_sweep = now + window_seconds

    def is_allowed(self, api_key_id: str, limit: int, window_seconds: int = 60) -> bool:
        """Check if request is within rate limit, and record it if so."""
        with self._lock:
            self._sweep(window_seconds)
            recent = self._prune(api_key_id, window_seconds)
            if len(recent) >= limit:
                return False
            recent.append(self._clock())
            self.requests[api_key_id] = recent
            return True

    def get_remaining(self, api_key_id: str, limit: int, window_seconds: int = 60) -> int:
        """Get remaining requests in the current window."""
        with self._lock:
            return max(0, limit - len(self._prune(api_key_id, window_seconds)))

    def seconds_until_reset(self, api_key_id: str, window_seconds: int = 60) -> int:
        """Seconds until the oldest request in the window expires."""
        with self._lock:
            recent = self._prune(api_key_id, window_seconds)
            if not recent:
                return 0
            return max(0, int(min(recent) + window_seconds - self._clock()) + 1)


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce rate limits and payload size caps.

    Returns:
    - HTTP 429 Too Many Requests if rate limit exceeded
    - HTTP 413 Payload Too Large if payload exceeds limit
    """

    def __init__(self, app, config: Optional[RateLimitConfig] = None, limiter: Optional[InMemoryRateLimiter] = None):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or InMemoryRateLimiter()

    async def dispatch(self, request: Request, call_next):
        """Check payload size and rate limit before processing."""

        if any(request.url.path.startswith(p) for p in self.config.excluded_paths):
            return await call_next(request)

        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("Content-Length")
            if content_length and content_length.isdigit():
                size_bytes = int(content_length)
                max_size_bytes = self.config.max_request_payload_mb * 1024 * 1024
                if size_bytes > max_size_bytes:
                    return json_error(
                        f"Request payload exceeds {self.config.max_request_payload_mb} MB limit",
                        error_type="PAYLOAD_TOO_LARGE",
                        code="PAYLOAD_TOO_LARGE",
                        detail=f"received {round(size_bytes / (1024 * 1024), 2)} MB",
                        status_code=413,
                    )

        api_key_id = self._extract_api_key_id(request.headers.get("Authorization", ""))
        limit = self.config.rate_limit_per_minute

        if api_key_id and not self.limiter.is_allowed(api_key_id, limit):
            reset_in = self.limiter.seconds_until_reset(api_key_id)
            return json_error(
                f"Rate limit of {limit} requests per minute exceeded",
                error_type="RATE_LIMIT_EXCEEDED",
                code="RATE_LIMIT_EXCEEDED",
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={
                    "Retry-After": str(reset_in),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)

        if api_key_id:
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = str(self.limiter.get_remaining(api_key_id, limit))

        return response

    @staticmethod
    def _extract_api_key_id(auth_header: str) -> Optional[str]:
        """Return a short hash identifying the API key, if any."""
        parts = (auth_header or "").split()
        if len(parts) >= 2:
            return hashlib.sha256(parts[1].encode()).hexdigest()[:12]
        return None
