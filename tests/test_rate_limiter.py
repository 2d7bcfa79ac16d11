from souq.services.rate_limiter import InMemoryRateLimiter, check_rate_limit, reset_rate_limit


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_limiter(clock, max_attempts=5, window=600, lockout=600):
    return InMemoryRateLimiter(max_attempts=max_attempts, window_seconds=window, lockout_seconds=lockout, clock=clock)


def test_allows_exactly_max_attempts_per_window():
    clock = FakeClock()
    limiter = make_limiter(clock)

    results = [limiter.check("voucher-redeem:ip:1.2.3.4") for _ in range(5)]
    assert all(r.allowed for r in results)

    denied = limiter.check("voucher-redeem:ip:1.2.3.4")
    assert not denied.allowed
    assert denied.retry_after_ms > 0


def test_retry_after_counts_down_during_lockout():
    clock = FakeClock()
    limiter = make_limiter(clock, max_attempts=2, window=60, lockout=120)
    for _ in range(3):
        limiter.check("k")

    clock.advance(30)
    denied = limiter.check("k")
    assert not denied.allowed
    assert denied.retry_after_ms == 90_000


def test_window_elapse_resets_counter():
    clock = FakeClock()
    limiter = make_limiter(clock, max_attempts=2, window=60, lockout=60)
    assert limiter.check("k").allowed
    assert limiter.check("k").allowed

    clock.advance(61)
    assert limiter.check("k").allowed
    assert limiter.check("k").allowed
    assert not limiter.check("k").allowed


def test_lockout_expires():
    clock = FakeClock()
    limiter = make_limiter(clock, max_attempts=1, window=60, lockout=300)
    limiter.check("k")
    assert not limiter.check("k").allowed

    clock.advance(299)
    assert not limiter.check("k").allowed
    clock.advance(2)
    assert limiter.check("k").allowed


def test_reset_clears_key_only():
    clock = FakeClock()
    limiter = make_limiter(clock, max_attempts=1)
    limiter.check("a")
    limiter.check("b")
    assert not limiter.check("a").allowed

    limiter.reset("a")
    assert limiter.check("a").allowed
    assert not limiter.check("b").allowed


def test_keys_are_independent():
    clock = FakeClock()
    limiter = make_limiter(clock, max_attempts=1)
    assert limiter.check("voucher-redeem:ip:1.1.1.1").allowed
    assert limiter.check("voucher-redeem:user:7").allowed


def test_stale_entries_are_pruned():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_attempts=5, window_seconds=10, lockout_seconds=10, clock=clock, prune_every=3)
    limiter.check("old-1")
    limiter.check("old-2")
    clock.advance(11)
    limiter.check("fresh")

    assert set(limiter._entries) == {"fresh"}


def test_module_helpers_accept_an_injected_limiter():
    limiter = make_limiter(FakeClock(), max_attempts=1)
    assert check_rate_limit("k", limiter).allowed
    assert not check_rate_limit("k", limiter).allowed
    reset_rate_limit("k", limiter)
    assert check_rate_limit("k", limiter).allowed
