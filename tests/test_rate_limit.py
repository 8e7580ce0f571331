"""
Pulseboard - Rate Limiting Tests

Sliding window limiter with a fake clock, and 429 handling on routes.
"""

from pulseboard.gateway.rate_limit import (
    SCOPE_API,
    SCOPE_AUTH,
    SCOPE_EXPORT,
    SlidingWindowRateLimiter,
    build_rate_limiters,
)
from pulseboard.config import Settings
from tests.conftest import TEST_PASSWORD, auth_headers, token_for


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestSlidingWindowRateLimiter:

    def test_allows_up_to_limit(self):
        limiter = SlidingWindowRateLimiter("auth", limit=3, window_seconds=60, time_provider=FakeClock())

        decisions = [limiter.check("10.0.0.1") for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[0].remaining == 2
        assert decisions[3].remaining == 0

    def test_retry_after_counts_down_to_oldest_hit(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("auth", limit=2, window_seconds=60, time_provider=clock)
        limiter.check("ip")
        clock.advance(10)
        limiter.check("ip")
        clock.advance(5)

        decision = limiter.check("ip")

        assert decision.allowed is False
        assert decision.retry_after_seconds == 45

    def test_window_slides(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("api", limit=1, window_seconds=60, time_provider=clock)

        assert limiter.check("ip").allowed
        assert not limiter.check("ip").allowed

        clock.advance(60)
        assert limiter.check("ip").allowed

    def test_rejected_hits_do_not_extend_the_window(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("api", limit=1, window_seconds=60, time_provider=clock)
        limiter.check("ip")
        for _ in range(5):
            clock.advance(10)
            limiter.check("ip")

        clock.advance(10)
        assert limiter.check("ip").allowed

    def test_keys_are_independent(self):
        limiter = SlidingWindowRateLimiter("api", limit=1, window_seconds=60, time_provider=FakeClock())

        assert limiter.check("a").allowed
        assert limiter.check("b").allowed
        assert not limiter.check("a").allowed

    def test_reset(self):
        limiter = SlidingWindowRateLimiter("api", limit=1, window_seconds=60, time_provider=FakeClock())
        limiter.check("a")

        limiter.reset()

        assert limiter.check("a").allowed

    def test_idle_keys_are_swept(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("api", limit=5, window_seconds=60, time_provider=clock)
        for key in ("a", "b", "c"):
            limiter.check(key)
        assert limiter.tracked_keys == 3

        clock.advance(61)
        limiter.check("d")

        assert limiter.tracked_keys == 1

    def test_active_keys_survive_sweep(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("api", limit=2, window_seconds=60, time_provider=clock)
        limiter.check("idle")
        clock.advance(50)
        limiter.check("busy")
        clock.advance(11)

        limiter.check("other")

        assert limiter.tracked_keys == 2
        assert limiter.check("busy").remaining == 0

    def test_build_from_settings(self):
        settings = Settings(_env_file=None, AUTH_RATE_LIMIT=5, EXPORT_RATE_LIMIT=2, RATE_LIMIT_WINDOW_SECONDS=30)

        limiters = build_rate_limiters(settings)

        assert set(limiters) == {SCOPE_API, SCOPE_AUTH, SCOPE_EXPORT}
        assert limiters[SCOPE_AUTH].limit == 5
        assert limiters[SCOPE_EXPORT].limit == 2
        assert limiters[SCOPE_EXPORT].window_seconds == 30


class TestRateLimitedRoutes:

    def test_login_throttled_with_retry_after(self, client, regular_user):
        client.app.state.rate_limiters[SCOPE_AUTH] = SlidingWindowRateLimiter(SCOPE_AUTH, 2, 60)
        body = {"email": "viewer@test.com", "password": "wrong-password"}

        assert client.post("/api/auth/login", json=body).status_code == 401
        assert client.post("/api/auth/login", json=body).status_code == 401

        response = client.post("/api/auth/login", json={"email": "viewer@test.com", "password": TEST_PASSWORD})

        assert response.status_code == 429
        assert response.json()["detail"] == "Too many requests, please try again later"
        assert 1 <= int(response.headers["Retry-After"]) <= 60
        assert response.headers["X-RateLimit-Scope"] == SCOPE_AUTH

    def test_export_scope_is_separate(self, client, admin_user):
        token = token_for(client, admin_user)
        client.app.state.rate_limiters[SCOPE_EXPORT] = SlidingWindowRateLimiter(SCOPE_EXPORT, 1, 60)

        assert client.get("/api/export/metrics", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/export/metrics", headers=auth_headers(token)).status_code == 429
        # Other routes are unaffected
        assert client.get("/api/metrics", headers=auth_headers(token)).status_code == 200

    def test_api_scope_covers_every_route(self, client):
        client.app.state.rate_limiters[SCOPE_API] = SlidingWindowRateLimiter(SCOPE_API, 1, 60)

        assert client.get("/api/metrics").status_code == 401
        assert client.get("/api/metrics").status_code == 429

    def test_forwarded_header_ignored_by_default(self, client):
        limiter = SlidingWindowRateLimiter(SCOPE_AUTH, 3, 60)
        client.app.state.rate_limiters[SCOPE_AUTH] = limiter
        body = {"email": "nobody@test.com", "password": "wrong-password"}

        statuses = [
            client.post(
                "/api/auth/login", json=body, headers={"X-Forwarded-For": f"10.0.0.{i}"}
            ).status_code
            for i in range(10)
        ]

        assert statuses[:3] == [401, 401, 401]
        assert set(statuses[3:]) == {429}
        assert limiter.tracked_keys == 1

    def test_forwarded_header_used_when_trusted(self, client, monkeypatch):
        monkeypatch.setattr(client.app.state.settings, "RATE_LIMIT_TRUST_FORWARDED", True)
        limiter = SlidingWindowRateLimiter(SCOPE_AUTH, 1, 60)
        client.app.state.rate_limiters[SCOPE_AUTH] = limiter
        body = {"email": "nobody@test.com", "password": "wrong-password"}

        first = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": "10.0.0.1"})
        second = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": "10.0.0.2"})

        assert first.status_code == 401
        assert second.status_code == 401
        assert limiter.tracked_keys == 2
