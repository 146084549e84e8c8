"""Middleware components for the kiosk gateway."""

import hmac
import time
import logging
from typing import Dict, Iterable
from collections import defaultdict, deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

BEARER_PREFIX = "Bearer "


class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer token check for the configuration endpoints.

    The keypad routes stay open; only paths under ``protected_prefixes``
    need the operator token.
    """

    def __init__(self, app, auth_token: str, protected_prefixes: Iterable[str] = ("/api/v1/config",)):
        super().__init__(app)
        self.auth_token = auth_token
        self.protected_prefixes = tuple(protected_prefixes)
        self.logger = logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.protected_prefixes):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith(BEARER_PREFIX):
            return self._unauthorized("Bearer token required")

        if not self._validate_token(auth_header[len(BEARER_PREFIX):]):
            self.logger.warning(f"Rejected configuration request to {request.url.path}")
            return self._unauthorized("Invalid token")

        return await call_next(request)

    def _validate_token(self, token: str) -> bool:
        # An empty configured token never matches
        if not self.auth_token:
            return False
        return hmac.compare_digest(token.encode(), self.auth_token.encode())

    @staticmethod
    def _unauthorized(message: str) -> JSONResponse:
        return JSONResponse({"error": message}, status_code=401, headers={"WWW-Authenticate": "Bearer"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window throttling per client address; slows down PIN guessing."""

    WINDOW_SECONDS = 60
    EXEMPT_PATHS = frozenset({"/health", "/ws"})

    def __init__(self, app, requests_per_minute: int = 60):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.logger = logging.getLogger(__name__)
        self.client_requests: Dict[str, deque] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        if self._remaining(client) == 0:
            self.logger.warning(f"Rate limit exceeded for {client}")
            return JSONResponse(
                {"error": "Rate limit exceeded"},
                status_code=429,
                headers={
                    "Retry-After": str(self.WINDOW_SECONDS),
                    "X-RateLimit-Limit": str(self.requests_per_minute),
                    "X-RateLimit-Remaining": "0",
                },
            )

        self.client_requests[client].append(time.monotonic())
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(self._remaining(client))
        return response

    def _remaining(self, client: str) -> int:
        """Requests left for ``client`` in the current window."""
        requests = self.client_requests[client]
        cutoff = time.monotonic() - self.WINDOW_SECONDS
        while requests and requests[0] <= cutoff:
            requests.popleft()
        if not requests:
            # Forget idle clients
            del self.client_requests[client]
        return max(0, self.requests_per_minute - len(requests))
