import pytest

from flighttrack.domain import RateLimited
from flighttrack.services.rate_limit import SlidingWindowRateLimiter


def test_fourth_request_in_window_is_rejected(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=3, window_s=60.0, clock=clock)

    for _ in range(3):
        assert limiter.try_acquire("caller").allowed
        clock.advance(1)

    decision = limiter.try_acquire("caller")
    assert not decision.allowed
    assert decision.retry_after == pytest.approx(57.0)


def test_first_request_of_next_window_is_accepted(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=3, window_s=60.0, clock=clock)

    for _ in range(3):
        limiter.try_acquire("caller")
    assert not limiter.try_acquire("caller").allowed

    clock.advance(60)

    assert limiter.try_acquire("caller").allowed
    assert limiter.try_acquire("caller").allowed


def test_minimum_interval_is_enforced(clock):
    limiter = SlidingWindowRateLimiter(
        max_per_window=30, window_s=60.0, min_interval_s=2.0, clock=clock
    )

    assert limiter.try_acquire("caller").allowed
    clock.advance(0.5)

    decision = limiter.try_acquire("caller")
    assert not decision.allowed
    assert decision.retry_after == pytest.approx(1.5)

    clock.advance(1.5)
    assert limiter.try_acquire("caller").allowed


def test_keys_are_limited_independently(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=1, window_s=60.0, clock=clock)

    assert limiter.try_acquire("a").allowed
    assert limiter.try_acquire("b").allowed
    assert not limiter.try_acquire("a").allowed


def test_acquire_raises_rate_limited(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=1, window_s=10.0, clock=clock)
    limiter.acquire("caller")
    clock.advance(4)

    with pytest.raises(RateLimited) as excinfo:
        limiter.acquire("caller")

    assert excinfo.value.retry_after == pytest.approx(6.0)


def test_prune_drops_elapsed_windows(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=5, window_s=10.0, clock=clock)
    limiter.try_acquire("old")
    clock.advance(8)
    limiter.try_acquire("new")
    clock.advance(3)

    assert limiter.prune() == 1
    assert len(limiter) == 1


def test_distinct_callers_do_not_accumulate(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=30, window_s=60.0, clock=clock)

    for caller in range(1000):
        assert limiter.try_acquire(f"10.0.{caller // 256}.{caller % 256}").allowed
        clock.advance(1)

    assert len(limiter) <= 61


def test_evicted_caller_starts_a_fresh_window(clock):
    limiter = SlidingWindowRateLimiter(max_per_window=1, window_s=10.0, clock=clock)
    assert limiter.try_acquire("caller").allowed
    assert not limiter.try_acquire("caller").allowed

    clock.advance(10)
    assert limiter.try_acquire("other").allowed

    assert len(limiter) == 1
    assert limiter.try_acquire("caller").allowed


def test_rejects_nonsensical_budget():
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(max_per_window=0, window_s=10.0)
