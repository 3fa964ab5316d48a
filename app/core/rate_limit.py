"""
Rate limiting.

Two layers:
- `limiter`: slowapi limiter keyed on the Authorization header, used as a
  coarse per-client guard on individual routes.
- `FixedWindowRateLimiter`: per-principal, per-operation-class counter that
  the document gateway consults before expensive reads (search).

The fixed window limiter never holds hidden global state: the application
creates one instance and passes it to the gateway, and tests build their own
with a fake clock.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

from slowapi import Limiter
from starlette.requests import Request

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)


def get_authorization_header(request: Request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"


limiter = Limiter(key_func=get_authorization_header)


@dataclass
class RateLimitState:
    """Counter for one (principal, operation class) window."""
    window_start: float
    count: int


@runtime_checkable
class RateLimitStore(Protocol):
    """Backing store for window counters. `hit` must be atomic per key."""

    def hit(self, key: str, now: float, window_seconds: float) -> int:
        """Record one call at `now` and return the count in the current window."""
        ...

    def purge(self, now: float, idle_seconds: float) -> int:
        """Drop windows that ended more than `idle_seconds` ago; return how many."""
        ...


class InMemoryRateLimitStore:
    """Process-local store guarded by a single mutex."""

    def __init__(self):
        self._lock = threading.Lock()
        self._states: dict[str, RateLimitState] = {}

    def hit(self, key: str, now: float, window_seconds: float) -> int:
        with self._lock:
            state = self._states.get(key)
            if state is None or now >= state.window_start + window_seconds:
                state = RateLimitState(window_start=now, count=0)
                self._states[key] = state
            state.count += 1
            return state.count

    def purge(self, now: float, idle_seconds: float) -> int:
        with self._lock:
            stale = [
                key for key, state in self._states.items()
                if now - state.window_start >= idle_seconds
            ]
            for key in stale:
                del self._states[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class FixedWindowRateLimiter:
    """
    Fixed-window limiter: at most `limit` calls per principal and operation
    class within `window_seconds` of the window's first call.

    A window only resets once it has fully elapsed; there is no partial decay.
    `allow` also purges idle windows, at most once per window length, so the
    store does not grow with every principal that ever searched.
    """

    def __init__(
        self,
        limit: int = config.SEARCH_RATE_LIMIT,
        window_seconds: float = config.SEARCH_RATE_WINDOW_SECONDS,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.clock = clock
        self._purge_lock = threading.Lock()
        self._last_purge = clock()

    @staticmethod
    def key_for(principal_key: str, operation_class: str) -> str:
        return f"{operation_class}:{principal_key}"

    def allow(self, principal_key: str, operation_class: str) -> bool:
        """Count this call and report whether it is within the limit."""
        now = self.clock()
        count = self.store.hit(
            self.key_for(principal_key, operation_class),
            now,
            self.window_seconds,
        )
        self._maybe_purge(now)
        if count > self.limit:
            log.info(
                "Rate limit hit: principal=%s class=%s count=%d limit=%d",
                principal_key, operation_class, count, self.limit,
            )
            return False
        return True

    def _maybe_purge(self, now: float) -> None:
        # At most once per window length, drop windows nobody has touched lately
        with self._purge_lock:
            if now - self._last_purge < self.window_seconds:
                return
            self._last_purge = now
        purged = self.purge()
        if purged:
            log.debug("Purged %d idle rate limit windows", purged)

    def purge(self, idle_seconds: float | None = None) -> int:
        """Garbage-collect quiescent windows (default: two window lengths)."""
        idle = idle_seconds if idle_seconds is not None else 2 * self.window_seconds
        return self.store.purge(self.clock(), idle)
