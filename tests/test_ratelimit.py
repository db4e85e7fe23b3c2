from sitegrade.scans.ratelimit import InMemoryRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_limit_is_per_client_ip():
    limiter = InMemoryRateLimiter(limit=2, clock=FakeClock())

    assert limiter.allow("1.1.1.1")
    assert limiter.allow("1.1.1.1")
    assert not limiter.allow("1.1.1.1")
    assert limiter.allow("2.2.2.2")


def test_window_slides():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.allow("ip")
    clock.now += 59
    assert not limiter.allow("ip")
    clock.now += 1
    assert limiter.allow("ip")


def test_refused_attempts_do_not_extend_the_window():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(limit=1, window_seconds=10, clock=clock)

    limiter.allow("ip")
    for _ in range(5):
        clock.now += 1
        limiter.allow("ip")
    clock.now += 5
    assert limiter.allow("ip")


def test_reset():
    limiter = InMemoryRateLimiter(limit=1)
    limiter.allow("ip")
    limiter.reset()

    assert limiter.allow("ip")
