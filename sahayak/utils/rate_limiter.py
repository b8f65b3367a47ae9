"""
Sahayak — Rate Limiter Middleware
Per-IP request limiting for the HTTP adapter.
Uses an in-memory store (no Redis needed).
"""

import time
from collections import defaultdict

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sahayak.utils.logger import logger


class RateLimiter(BaseHTTPMiddleware):
    """
    Simple sliding-window rate limiter.
    Default: 60 requests per minute per IP. Health checks are not counted.
    """

    EXEMPT_PATHS = ("/", "/health")

    def __init__(self, app, requests_per_minute: int = 60):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.window = 60  # seconds
        self._store: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()

        # Clean old entries
        self._store[client_ip] = [
            t for t in self._store[client_ip] if now - t < self.window
        ]

        if len(self._store[client_ip]) >= self.requests_per_minute:
            logger.warning(f"🚦 Rate limit hit for {client_ip}")
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests", "message": "Please wait a minute and try again."},
            )

        self._store[client_ip].append(now)
        return await call_next(request)
