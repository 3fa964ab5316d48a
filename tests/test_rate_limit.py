import threading

import pytest

from app.core.rate_limit import FixedWindowRateLimiter, InMemoryRateLimitStore, RateLimitStore


def exhaust(limiter, principal="alice", operation="search", times=20):
    return [limiter.allow(principal, operation) for _ in range(times)]


def test_twentieth_call_allowed_twenty_first_denied(rate_limiter):
    assert all(exhaust(rate_limiter))
    assert rate_limiter.allow("alice", "search") is False


def test_denied_calls_stay_denied_until_window_ends(rate_limiter, clock):
    exhaust(rate_limiter)

    clock.advance(59.9)
    assert rate_limiter.allow("alice", "search") is False

    clock.advance(0.1)
    assert rate_limiter.allow("alice", "search") is True


def test_window_is_measured_from_its_first_call(rate_limiter, clock):
    rate_limiter.allow("alice", "search")
    clock.advance(50)
    exhaust(rate_limiter, times=19)

    assert rate_limiter.allow("alice", "search") is False
    clock.advance(10)
    assert rate_limiter.allow("alice", "search") is True


def test_principals_are_counted_separately(rate_limiter):
    exhaust(rate_limiter, principal="alice")

    assert rate_limiter.allow("bob", "search") is True
    assert rate_limiter.allow("alice", "search") is False


def test_operation_classes_are_counted_separately(rate_limiter):
    exhaust(rate_limiter, operation="search")

    assert rate_limiter.allow("alice", "export") is True


def test_concurrent_hits_never_exceed_limit(clock):
    limiter = FixedWindowRateLimiter(limit=20, window_seconds=60, clock=clock)
    results = []
    lock = threading.Lock()
    start = threading.Barrier(50)

    def worker():
        start.wait()
        allowed = limiter.allow("alice", "search")
        with lock:
            results.append(allowed)

    threads = [threading.Thread(target=worker) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 20
    assert results.count(False) == 30


def test_purge_drops_quiet_windows(clock):
    store = InMemoryRateLimitStore()
    limiter = FixedWindowRateLimiter(limit=20, window_seconds=60, store=store, clock=clock)
    limiter.allow("alice", "search")
    clock.advance(90)
    limiter.allow("bob", "search")

    clock.advance(40)
    assert limiter.purge() == 1
    assert len(store) == 1


def test_allow_purges_idle_windows(clock):
    store = InMemoryRateLimitStore()
    limiter = FixedWindowRateLimiter(limit=20, window_seconds=60, store=store, clock=clock)
    for n in range(1000):
        limiter.allow(f"user-{n}", "search")
    assert len(store) == 1000

    clock.advance(3600)
    limiter.allow("late-comer", "search")

    assert len(store) == 1


def test_allow_keeps_recent_windows(clock):
    store = InMemoryRateLimitStore()
    limiter = FixedWindowRateLimiter(limit=20, window_seconds=60, store=store, clock=clock)
    limiter.allow("alice", "search")

    clock.advance(61)
    limiter.allow("bob", "search")

    assert len(store) == 2


def test_store_is_pluggable(clock):
    class CountingStore:
        def __init__(self):
            self.calls = []

        def hit(self, key, now, window_seconds):
            self.calls.append((key, now, window_seconds))
            return len(self.calls)

        def purge(self, now, idle_seconds):
            return 0

    store = CountingStore()
    assert isinstance(store, RateLimitStore)
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=5, store=store, clock=clock)

    assert limiter.allow("alice", "search") is True
    assert limiter.allow("alice", "search") is False
    assert store.calls[0] == ("search:alice", 1000.0, 5)


@pytest.mark.parametrize("limit, window", [(0, 60), (20, 0), (20, -1)])
def test_rejects_nonsense_configuration(limit, window):
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(limit=limit, window_seconds=window)
