"""
Rate Limiter

In-process fixed-window counter keyed by arbitrary strings (client IP,
user id). Used to slow down voucher code guessing before any database work.

- The first attempt in a window is allowed and starts the window
- Attempts up to max_attempts inside the window are allowed
- The attempt that exceeds max_attempts locks the key for lockout_seconds
- reset() forgets the key (called after a successful redemption)

State is process-local. Deployments running several workers need a shared
backend implementing the same RateLimiter interface.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from souq.core.config import (
    VOUCHER_RATE_LIMIT_MAX,
    VOUCHER_RATE_LIMIT_WINDOW_SECONDS,
    VOUCHER_RATE_LIMIT_LOCKOUT_SECONDS,
)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_ms: int | None = None


@dataclass
class _Entry:
    count: int
    window_started: float
    locked_until: float | None = None


class RateLimiter:
    """Interface for rate limit backends."""

    def check(self, key: str) -> RateLimitResult:
        raise NotImplementedError

    def reset(self, key: str) -> None:
        raise NotImplementedError


class InMemoryRateLimiter(RateLimiter):
    def __init__(
        self,
        max_attempts: int = VOUCHER_RATE_LIMIT_MAX,
        window_seconds: float = VOUCHER_RATE_LIMIT_WINDOW_SECONDS,
        lockout_seconds: float = VOUCHER_RATE_LIMIT_LOCKOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        prune_every: int = 1000,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._prune_every = prune_every
        self._calls = 0

    def check(self, key: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            self._calls += 1
            if self._calls % self._prune_every == 0:
                self._prune(now)

            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = _Entry(count=1, window_started=now)
                return RateLimitResult(allowed=True)

            if entry.locked_until is not None:
                if now < entry.locked_until:
                    return RateLimitResult(allowed=False, retry_after_ms=_ms(entry.locked_until - now))
                self._entries[key] = _Entry(count=1, window_started=now)
                return RateLimitResult(allowed=True)

            if now - entry.window_started >= self.window_seconds:
                self._entries[key] = _Entry(count=1, window_started=now)
                return RateLimitResult(allowed=True)

            entry.count += 1
            if entry.count > self.max_attempts:
                entry.locked_until = now + self.lockout_seconds
                return RateLimitResult(allowed=False, retry_after_ms=_ms(self.lockout_seconds))

            return RateLimitResult(allowed=True)

    def reset(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _prune(self, now: float) -> None:
        stale = [
            key for key, entry in self._entries.items()
            if now >= (entry.locked_until if entry.locked_until is not None
                       else entry.window_started + self.window_seconds)
        ]
        for key in stale:
            del self._entries[key]


def _ms(seconds: float) -> int:
    return max(1, int(seconds * 1000))


# Shared by the voucher redemption route
voucher_rate_limiter = InMemoryRateLimiter()


def check_rate_limit(key: str, limiter: RateLimiter | None = None) -> RateLimitResult:
    return (limiter or voucher_rate_limiter).check(key)


def reset_rate_limit(key: str, limiter: RateLimiter | None = None) -> None:
    (limiter or voucher_rate_limiter).reset(key)
