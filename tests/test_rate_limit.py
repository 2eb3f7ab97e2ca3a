from blip.services.rate_limit import FixedWindowRateLimiter


def test_window_allows_limit_then_blocks():
    limiter = FixedWindowRateLimiter(limit=3, window_seconds=60)
    results = [limiter.hit("ip:1", now=120.0 + i) for i in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert results[2].remaining == 0
    assert results[3].retry_after == 57


def test_keys_are_independent_and_windows_roll():
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60)

    assert limiter.hit("a", now=0).allowed
    assert limiter.hit("b", now=1).allowed
    assert not limiter.hit("a", now=59).allowed
    assert limiter.hit("a", now=60).allowed


def test_zero_limit_always_blocks():
    limiter = FixedWindowRateLimiter(limit=0, window_seconds=60)
    assert not limiter.hit("a", now=0).allowed
