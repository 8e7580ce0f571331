"""
Pulseboard - Rate Limiting

Per-client-IP sliding window limits, kept in process memory.

Three scopes, each with its own window counter:
- api: every request under /api
- auth: login and registration
- export: data exports

A request over the limit gets 429 with Retry-After.
"""

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from fastapi import HTTPException, Request, status

from pulseboard.audit.service import get_client_ip


logger = logging.getLogger(__name__)

SCOPE_API = "api"
SCOPE_AUTH = "auth"
SCOPE_EXPORT = "export"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    scope: str
    limit: int
    remaining: int
    retry_after_seconds: float = 0.0


class SlidingWindowRateLimiter:
    """
    Counts request timestamps per key over a rolling window.

    Keys whose hits have all aged out are dropped on a sweep that runs at
    most once per window, so the table only holds recently active clients.

    Args:
        scope: Name reported in decisions and headers
        limit: Requests allowed per key within the window
        window_seconds: Window length
        time_provider: Clock, injectable for deterministic tests
    """

    def __init__(
        self,
        scope: str,
        limit: int,
        window_seconds: float,
        time_provider: Optional[Callable[[], float]] = None,
    ):
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
        self._time_provider = time_provider or time.monotonic
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = self._time_provider()

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]

    def check(self, key: str) -> RateLimitDecision:
        """Record a hit for key if it fits in the window."""
        now = self._time_provider()
        self._sweep(now)

        hits = self._hits.setdefault(key, deque())
        self._prune(hits, now)

        if len(hits) >= self.limit:
            retry_after = hits[0] + self.window_seconds - now if hits else self.window_seconds
            if not hits:
                del self._hits[key]
            return RateLimitDecision(
                allowed=False,
                scope=self.scope,
                limit=self.limit,
                remaining=0,
                retry_after_seconds=max(retry_after, 0.0),
            )

        hits.append(now)
        return RateLimitDecision(
            allowed=True,
            scope=self.scope,
            limit=self.limit,
            remaining=self.limit - len(hits),
        )

    def reset(self) -> None:
        self._hits.clear()


def build_rate_limiters(settings) -> Dict[str, SlidingWindowRateLimiter]:
    """Limiters for every scope, sized from settings."""
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    return {
        SCOPE_API: SlidingWindowRateLimiter(SCOPE_API, settings.API_RATE_LIMIT, window),
        SCOPE_AUTH: SlidingWindowRateLimiter(SCOPE_AUTH, settings.AUTH_RATE_LIMIT, window),
        SCOPE_EXPORT: SlidingWindowRateLimiter(SCOPE_EXPORT, settings.EXPORT_RATE_LIMIT, window),
    }


def _throttle_exception(decision: RateLimitDecision) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests, please try again later",
        headers={
            "Retry-After": str(max(1, int(math.ceil(decision.retry_after_seconds)))),
            "X-RateLimit-Scope": decision.scope,
            "X-RateLimit-Limit": str(decision.limit),
        },
    )


def rate_limit_key(request: Request, trust_forwarded: bool = False) -> str:
    """
    Client key for limiting.

    The socket peer address unless the app sits behind a proxy that
    overwrites X-Forwarded-For; a client-supplied header would otherwise
    let every request pick a fresh key.
    """
    if trust_forwarded:
        return get_client_ip(request)
    return request.client.host if request.client else "unknown"


def rate_limited(scope: str) -> Callable:
    """
    Dependency factory applying the limiter for a scope.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limited(SCOPE_AUTH))])
    """

    async def enforce_rate_limit(request: Request) -> None:
        limiters = getattr(request.app.state, "rate_limiters", None)
        if not limiters or scope not in limiters:
            return

        settings = getattr(request.app.state, "settings", None)
        client_ip = rate_limit_key(request, getattr(settings, "RATE_LIMIT_TRUST_FORWARDED", False))
        decision = limiters[scope].check(client_ip)
        if not decision.allowed:
            logger.warning("Rate limit %s exceeded by %s on %s", scope, client_ip, request.url.path)
            raise _throttle_exception(decision)

    return enforce_rate_limit
