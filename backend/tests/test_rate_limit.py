"""Tests for the Redis sliding-window rate limiter."""

import pytest
from httpx import AsyncClient
from starlette.requests import Request

import hearinghope.middleware.rate_limit as rate_limit_module
from hearinghope.config import settings
from hearinghope.middleware.rate_limit import RATE_LIMIT_TIERS, RateLimiter, client_ip


class FakeRedis:
    """In-memory stand-in for the sorted-set commands the limiter uses."""

    def __init__(self):
        self.sets: dict[str, dict[str, float]] = {}
        self.ttls: dict[str, int] = {}

    async def zremrangebyscore(self, key, min_score, max_score):
        members = self.sets.get(key, {})
        for member, score in list(members.items()):
            if min_score <= score <= max_score:
                del members[member]

    async def zcard(self, key):
        return len(self.sets.get(key, {}))

    async def zrange(self, key, start, end, withscores=False):
        ordered = sorted(self.sets.get(key, {}).items(), key=lambda item: item[1])
        selected = ordered[start:end + 1]
        return selected if withscores else [member for member, _ in selected]

    async def zadd(self, key, mapping):
        self.sets.setdefault(key, {}).update(mapping)

    async def expire(self, key, seconds):
        self.ttls[key] = seconds


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()

    async def get_fake_redis():
        return fake

    monkeypatch.setattr(rate_limit_module, "get_redis", get_fake_redis)
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    return fake


def _request(headers: dict | None = None, client=("10.0.0.9", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


@pytest.mark.unit
class TestTiersAndClientIp:

    def test_forwarded_for_first_hop(self):
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert client_ip(request) == "203.0.113.7"

    def test_real_ip(self):
        assert client_ip(_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"

    def test_peer_address(self):
        assert client_ip(_request()) == "10.0.0.9"

    def test_no_client(self):
        assert client_ip(_request(client=None)) == "unknown"

    def test_tiers(self):
        assert RATE_LIMIT_TIERS == {
            "default": (100, 60),
            "auth": (10, 60),
            "sensitive": (20, 60),
        }


@pytest.mark.unit
@pytest.mark.asyncio
class TestRateLimiter:

    async def test_allows_up_to_limit(self, fake_redis):
        results = [await RateLimiter.hit("auth:1.2.3.4", 3, 60) for _ in range(4)]

        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert fake_redis.ttls["ratelimit:auth:1.2.3.4"] == 60

    async def test_keys_are_independent(self, fake_redis):
        for _ in range(3):
            await RateLimiter.hit("auth:1.1.1.1", 3, 60)

        allowed, _ = await RateLimiter.hit("auth:2.2.2.2", 3, 60)
        assert allowed

    async def test_fails_open_when_redis_is_down(self, monkeypatch):
        async def unreachable():
            raise ConnectionError("redis down")

        monkeypatch.setattr(rate_limit_module, "get_redis", unreachable)

        allowed, _ = await RateLimiter.hit("auth:1.2.3.4", 1, 60)
        assert allowed


@pytest.mark.integration
@pytest.mark.asyncio
class TestLoginRateLimit:

    async def test_login_blocked_after_auth_tier(self, client: AsyncClient, fake_redis):
        limit, _ = RATE_LIMIT_TIERS["auth"]
        payload = {"email": "nobody@example.com", "password": "wrongpassword"}

        for _ in range(limit):
            response = await client.post("/api/auth/login", json=payload)
            assert response.status_code == 401

        response = await client.post("/api/auth/login", json=payload)

        assert response.status_code == 429
        assert response.json()["error_code"] == "RATE_LIMITED"
        assert response.json()["success"] is False
        assert int(response.headers["retry-after"]) >= 1

    async def test_other_clients_unaffected(self, client: AsyncClient, fake_redis):
        limit, _ = RATE_LIMIT_TIERS["auth"]
        payload = {"email": "nobody@example.com", "password": "wrongpassword"}

        for _ in range(limit + 1):
            await client.post(
                "/api/auth/login", json=payload, headers={"X-Forwarded-For": "203.0.113.1"}
            )

        response = await client.post(
            "/api/auth/login", json=payload, headers={"X-Forwarded-For": "203.0.113.2"}
        )
        assert response.status_code == 401

    async def test_disabled_limiter_never_blocks(self, client: AsyncClient, fake_redis, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_enabled", False)
        payload = {"email": "nobody@example.com", "password": "wrongpassword"}

        for _ in range(RATE_LIMIT_TIERS["auth"][0] + 2):
            response = await client.post("/api/auth/login", json=payload)
            assert response.status_code == 401
        assert fake_redis.sets == {}
