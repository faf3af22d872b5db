"""Tests for the per-caller token bucket."""

import pytest
from starlette.requests import Request

from proxyforge.models.failure import FailureKind, RateLimitExceededError
from proxyforge.services.rate_limit import (
    GLOBAL_CALLER,
    TokenBucketLimiter,
    caller_key,
    get_rate_limiter,
    hash_caller,
    reset_rate_limiter,
)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_request(headers: dict[str, str] | None = None, client=("10.0.0.1", 5555)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/generate",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> TokenBucketLimiter:
    return TokenBucketLimiter(capacity=3, window_seconds=60, clock=clock)


class TestTokenBucketLimiter:
    def test_allows_up_to_capacity(self, limiter: TokenBucketLimiter) -> None:
        assert [limiter.allow("a") for _ in range(4)] == [True, True, True, False]

    def test_callers_have_separate_buckets(self, limiter: TokenBucketLimiter) -> None:
        for _ in range(3):
            limiter.allow("a")

        assert limiter.allow("a") is False
        assert limiter.allow("b") is True

    def test_refills_over_time(self, limiter: TokenBucketLimiter, clock: FakeClock) -> None:
        for _ in range(3):
            limiter.allow("a")

        clock.advance(20)  # one token per 20 seconds

        assert limiter.allow("a") is True
        assert limiter.allow("a") is False

    def test_partial_refill_is_not_lost(
        self, limiter: TokenBucketLimiter, clock: FakeClock
    ) -> None:
        for _ in range(3):
            limiter.allow("a")

        # Two short gaps that each add less than one token
        clock.advance(15)
        assert limiter.allow("a") is False
        clock.advance(15)

        assert limiter.allow("a") is True

    def test_refill_never_exceeds_capacity(
        self, limiter: TokenBucketLimiter, clock: FakeClock
    ) -> None:
        limiter.allow("a")
        clock.advance(3600)

        assert limiter.remaining("a") == 3

    def test_remaining_does_not_consume(self, limiter: TokenBucketLimiter) -> None:
        limiter.allow("a")

        assert limiter.remaining("a") == 2
        assert limiter.remaining("a") == 2
        assert limiter.remaining("unknown") == 3

    def test_check_raises_when_exhausted(self, limiter: TokenBucketLimiter) -> None:
        for _ in range(3):
            limiter.check("a")

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.check("a")

        assert exc_info.value.kind == FailureKind.RATE_LIMITED
        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 20

    def test_idle_buckets_are_dropped(self, limiter: TokenBucketLimiter, clock: FakeClock) -> None:
        for caller in ("a", "b", "c"):
            limiter.allow(caller)
        assert limiter.tracked_callers() == 3

        clock.advance(60)
        limiter.allow("d")

        assert limiter.tracked_callers() == 1

    def test_recently_used_buckets_are_kept(
        self, limiter: TokenBucketLimiter, clock: FakeClock
    ) -> None:
        for _ in range(3):
            limiter.allow("a")
        limiter.allow("b")

        clock.advance(50)
        assert limiter.allow("a") is True  # refills 2, last used now
        clock.advance(10)
        limiter.allow("c")

        assert limiter.tracked_callers() == 2
        assert limiter.remaining("a") == 1


class TestCallerKey:
    def test_prefers_first_forwarded_address(self) -> None:
        request = make_request({"X-Forwarded-For": "1.2.3.4, 5.6.7.8"})
        assert caller_key(request) == "1.2.3.4"

    def test_falls_back_to_real_ip(self) -> None:
        request = make_request({"X-Real-IP": "8.8.8.8"})
        assert caller_key(request) == "8.8.8.8"

    def test_falls_back_to_peer(self) -> None:
        assert caller_key(make_request()) == "10.0.0.1"

    def test_unknown_caller_is_global(self) -> None:
        assert caller_key(make_request(client=None)) == GLOBAL_CALLER


class TestSingleton:
    def test_get_returns_same_instance(self) -> None:
        assert get_rate_limiter() is get_rate_limiter()

    def test_reset_clears_state(self) -> None:
        first = get_rate_limiter()
        first.allow("a")

        reset_rate_limiter()

        assert get_rate_limiter() is not first
        assert get_rate_limiter().remaining("a") == get_rate_limiter().capacity


def test_hash_caller_is_stable_and_short() -> None:
    assert hash_caller("1.2.3.4") == hash_caller("1.2.3.4")
    assert hash_caller("1.2.3.4") != hash_caller("4.3.2.1")
    assert len(hash_caller("1.2.3.4")) == 12
