# pkg/rate_limit/store.py
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the key's window resets


class FixedWindowCounterStore:
    """
    In-memory request counters keyed by client address.

    Each key owns a window that starts at its first hit; once ``window_seconds``
    have elapsed the counter starts over. Expired entries are evicted lazily
    on access: a key past its window restarts at its next hit, and every
    ``sweep_every`` hits all expired keys are dropped.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 900,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 1000,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._sweep_every = sweep_every
        self._hits_since_sweep = 0

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
            self._hits_since_sweep += 1
            if self._hits_since_sweep >= self._sweep_every:
                self._evict_expired(now)

        reset_after = max(0, int(round(started + self.window_seconds - now)))
        return RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_after=reset_after,
        )

    def sweep(self) -> int:
        """Drop every expired window; returns how many were removed."""
        with self._lock:
            return self._evict_expired(self._clock())

    def _evict_expired(self, now: float) -> int:
        self._hits_since_sweep = 0
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
