from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional

from mastocompat.core.config import env_int


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of one rate limit check, as Mastodon's X-RateLimit headers report it."""

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int = 0

    def headers(self) -> Dict[str, str]:
        out = {"X-RateLimit-Limit": str(self.limit), "X-RateLimit-Remaining": str(self.remaining)}
        if not self.allowed:
            out["Retry-After"] = str(self.retry_after_seconds)
        return out


@dataclass(slots=True)
class _Bucket:
    tokens: float
    updated: float

    def refill(self, now: float, capacity: int, per_second: float) -> None:
        self.tokens = min(float(capacity), self.tokens + max(0.0, now - self.updated) * per_second)
        self.updated = now


class TokenBucketRateLimiter:
    """Per-identity token buckets held in memory.

    Identities are user ids for authenticated calls and ``ip:<host>`` for
    anonymous ones. Buckets start full at ``burst`` tokens and refill at
    ``rpm`` tokens per minute.

    Security notes:
    - Each worker process limits independently.
    - Identities are truncated to bound memory use.

    """

    def __init__(
        self,
        *,
        rpm: int = 300,
        burst: Optional[int] = None,
        max_key_len: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rpm = max(1, int(rpm))
        self.capacity = int(burst) if burst is not None else max(2, self.rpm)
        self._per_second = self.rpm / 60.0
        self._max_key_len = max_key_len
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = Lock()

    @staticmethod
    def from_env() -> "TokenBucketRateLimiter":
        """Read MASTOCOMPAT_RATE_LIMIT_RPM (default 300) and MASTOCOMPAT_RATE_LIMIT_BURST."""

        burst = env_int("MASTOCOMPAT_RATE_LIMIT_BURST", 0)
        return TokenBucketRateLimiter(
            rpm=env_int("MASTOCOMPAT_RATE_LIMIT_RPM", 300),
            burst=burst if burst > 0 else None,
        )

    def check(self, identity: str) -> RateLimitDecision:
        """Take one token from the identity's bucket if one is available."""

        key = (identity or "anonymous")[: self._max_key_len]
        now = self._clock()
        with self._lock:
            bucket = self._buckets.setdefault(key, _Bucket(float(self.capacity), now))
            bucket.refill(now, self.capacity, self._per_second)
            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return RateLimitDecision(True, self.capacity, int(bucket.tokens))
            wait = (1.0 - bucket.tokens) / self._per_second
            return RateLimitDecision(False, self.capacity, 0, max(1, int(wait + 0.999)))
