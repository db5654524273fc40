"""
Token bucket guarding outbound provider calls: capacity tokens per window, refilled lazily
from elapsed time on each acquire (no background timer).

Acquisition is serialized: the lock is held across refill, wait and consume, so callers from
parallel batches queue behind one another and two waiters can never both spend the same
regenerated token.
"""
import logging
import math
import threading
import time
from typing import Callable

from slot_sync.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket: capacity tokens, refill rate capacity / window_ms tokens per ms."""

    def __init__(
        self,
        capacity: int = 30,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if capacity < 1 or window_seconds <= 0:
            raise ValueError("capacity must be >= 1 and window_seconds > 0")
        self.capacity = capacity
        self.refill_per_ms = capacity / (window_seconds * 1000)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._last_refill_ms = self._now_ms()
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _refill(self) -> None:
        now = self._now_ms()
        elapsed = max(0.0, now - self._last_refill_ms)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_per_ms)
        self._last_refill_ms = now

    @property
    def available(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def acquire(self) -> float:
        """Block until one token is available, consume it. Returns milliseconds waited (0 if immediate)."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0
            wait_ms = math.ceil((1 - self._tokens) / self.refill_per_ms)
            logger.warning("Rate limit reached, waiting for %sms", wait_ms)
            self._sleep(wait_ms / 1000)
            self._refill()
            # ceil() guarantees a full token unless the clock went backwards
            self._tokens = max(0.0, self._tokens - 1)
            return float(wait_ms)


_limiter: RateLimiter | None = None
_limiter_lock = threading.Lock()


def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter shared by every inventory client."""
    global _limiter
    with _limiter_lock:
        if _limiter is None:
            _limiter = RateLimiter(settings.rate_limit_capacity, settings.rate_limit_window_seconds)
        return _limiter
