import pytest

from blackgate.rate_limiter import RateLimitExceeded, RateLimiter, check_rate_limit


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Metrics:
    def __init__(self):
        self.id = "req-1"
        self.errors = []

    def set_error(self, message):
        self.errors.append(message)


def _allowed(limiter, metrics, path, per_minute, per_hour):
    try:
        check_rate_limit(path, per_minute, per_hour, limiter, metrics)
    except RateLimitExceeded:
        return False
    return True


def test_rate_limiter_minute_window():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    metrics = Metrics()

    assert _allowed(limiter, metrics, "/test", 2, 100) is True
    assert _allowed(limiter, metrics, "/test", 2, 100) is True
    assert _allowed(limiter, metrics, "/test", 2, 100) is False

    clock.advance(60)
    assert _allowed(limiter, metrics, "/test", 2, 100) is True


def test_rate_limit_exceeded_response_and_metrics():
    limiter = RateLimiter(clock=FakeClock())
    metrics = Metrics()
    check_rate_limit("/x", 1, 10, limiter, metrics)
    with pytest.raises(RateLimitExceeded) as excinfo:
        check_rate_limit("/x", 1, 10, limiter, metrics)
    exc = excinfo.value
    assert exc.status_code == 429
    assert exc.headers == {"Retry-After": "60"}
    assert exc.body == "Too Many Requests"
    assert metrics.errors == ["Rate limit exceeded"]


def test_hourly_limit():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    results = []
    for _ in range(4):
        results.append(limiter.is_allowed("k", 100, 3))
        clock.advance(61)
    assert results == [True, True, True, False]

    clock.advance(3600)
    assert limiter.is_allowed("k", 100, 3) is True


def test_entries_just_under_an_hour_still_count():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    assert limiter.is_allowed("k", 10, 1) is True
    clock.advance(3599)
    assert limiter.is_allowed("k", 10, 1) is False
    clock.advance(1)
    assert limiter.is_allowed("k", 10, 1) is True


def test_keys_are_independent():
    limiter = RateLimiter(clock=FakeClock())
    metrics = Metrics()
    assert _allowed(limiter, metrics, "/a", 1, 10) is True
    assert _allowed(limiter, metrics, "/a", 1, 10) is False
    assert _allowed(limiter, metrics, "/b", 1, 10) is True
    assert limiter.is_allowed("path:/b", 1, 10) is False
    assert limiter.is_allowed("/b", 1, 10) is True


def test_rejected_requests_are_not_recorded():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    assert limiter.is_allowed("k", 1, 100) is True
    clock.advance(30)
    assert limiter.is_allowed("k", 1, 100) is False
    clock.advance(30)
    assert limiter.is_allowed("k", 1, 100) is True


def test_zero_limit_rejects_everything():
    limiter = RateLimiter(clock=FakeClock())
    metrics = Metrics()
    assert _allowed(limiter, metrics, "/zero", 0, 0) is False
    assert metrics.errors == ["Rate limit exceeded"]


def test_negative_limit_wraps_to_large_value():
    limiter = RateLimiter(clock=FakeClock())
    metrics = Metrics()
    results = [_allowed(limiter, metrics, "/neg", -1, -1) for _ in range(50)]
    assert results == [True] * 50
    assert metrics.errors == []
    # The 50 accepted requests were recorded under the path key.
    assert limiter.is_allowed("path:/neg", 50, 1000) is False
    assert limiter.is_allowed("path:/neg", 51, 1000) is True