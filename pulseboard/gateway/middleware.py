"""
Pulseboard - Security Middleware

Request/response middleware for:
- Request ID injection for tracing
- Per-request access logging (method, path, status, duration)
- Security headers

WebSocket traffic passes through untouched.
"""

import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger("pulseboard.access")


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Security-focused middleware for all incoming HTTP requests.

    Responsibilities:
    1. Inject X-Request-ID header (reusing the client's when supplied)
    2. Log request outcome and timing
    3. Add security headers to response
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers.setdefault("Cache-Control", "no-store")

        logger.info(
            "%s %s %d %.1fms [%s]",
            request.method, request.url.path, response.status_code, duration_ms, request_id,
        )
        return response
