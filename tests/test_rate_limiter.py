"""Tests for the fixed-window limiter and bearer tokens."""

import redis

from app import rate_limiter
from app.auth import create_access_token, verify_access_token


class TestMemoryRateLimit:
    def test_allows_up_to_limit(self):
        results = [rate_limiter.check_memory_rate_limit("k", 3, 60) for _ in range(4)]

        assert [allowed for allowed, _, _ in results] == [True, True, True, False]
        assert results[2][1] == 3

    def test_keys_are_independent(self):
        rate_limiter.check_memory_rate_limit("a", 1, 60)

        allowed, _, _ = rate_limiter.check_memory_rate_limit("b", 1, 60)
        assert allowed

    def test_window_resets(self, monkeypatch):
        now = [1_000_000.0]
        monkeypatch.setattr(rate_limiter.time, "time", lambda: now[0])

        rate_limiter.check_memory_rate_limit("k", 1, 60)
        assert rate_limiter.check_memory_rate_limit("k", 1, 60)[0] is False

        now[0] += 61
        assert rate_limiter.check_memory_rate_limit("k", 1, 60)[0] is True

    def test_redis_failure_falls_back_to_memory(self, monkeypatch):
        class BrokenRedis:
            def pipeline(self):
                raise redis.ConnectionError("down")

        monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: BrokenRedis())

        allowed, count, _ = rate_limiter.check_rate_limit("k", 5, 60)
        assert allowed
        assert count == 1


class TestTokens:
    def test_round_trip(self):
        payload = verify_access_token(create_access_token("owner-42"))
        assert payload["sub"] == "owner-42"

    def test_tampered_token(self):
        token = create_access_token("owner-42")
        header, payload, _ = token.split(".")
        assert verify_access_token(f"{header}.{payload}.invalid-signature") is None
