"""
Per-key token bucket rate limiter for role changes.

Each key (a user id) gets its own bucket, created full on first use. Tokens
refill continuously at `tokens_per_interval` per `interval` seconds up to
`capacity`. Callers ask whether a withdrawal may happen now; nothing here
sleeps or blocks.
"""

import math
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass


@dataclass
class Bucket:
    """Token state for a single key."""
    tokens: float
    last_refill: float


class KeyedTokenBucketRateLimiter:
    """Token bucket rate limiter keyed by an arbitrary hashable id.

    Refill and withdraw happen under one lock with no awaits in between, so
    two concurrent events for the same key can never spend the same token.
    Buckets are never evicted.
    """

    def __init__(
        self,
        interval: float = 1.0,
        tokens_per_interval: float = 1.0,
        capacity: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if tokens_per_interval <= 0:
            raise ValueError(f"tokens_per_interval must be positive, got {tokens_per_interval}")
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._interval = float(interval)
        self._tokens_per_interval = float(tokens_per_interval)
        self._capacity = float(capacity)
        self._clock = clock
        self._buckets: dict[Hashable, Bucket] = {}
        self._lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def bucket_count(self) -> int:
        """Number of keys that have ever been seen."""
        return len(self._buckets)

    def tokens(self, key: Hashable) -> float:
        """Current token count for `key` after refilling."""
        with self._lock:
            return self._refill(key).tokens

    def try_remove_tokens(self, key: Hashable, cost: float = 1.0) -> bool:
        """Withdraw `cost` tokens from the bucket for `key` if it holds enough.

        Returns True and mutates the bucket on success. On failure only the
        refill is applied.
        """
        self._check_cost(cost)
        with self._lock:
            bucket = self._refill(key)
            if bucket.tokens >= cost:
                bucket.tokens -= cost
                return True
            return False

    def number_of_intervals_until_amount_can_be_removed(self, key: Hashable, cost: float = 1.0) -> int:
        """Whole refill intervals until `cost` tokens will be available for `key`.

        Returns 0 when the withdrawal would succeed right now.
        """
        self._check_cost(cost)
        with self._lock:
            bucket = self._refill(key)
            missing = cost - bucket.tokens
        if missing <= 0:
            return 0
        return math.ceil(missing / self._tokens_per_interval)

    def wait_seconds(self, key: Hashable, cost: float = 1.0) -> float:
        """Seconds until `cost` tokens will be available, rounded up to whole intervals."""
        return self.number_of_intervals_until_amount_can_be_removed(key, cost) * self._interval

    def _check_cost(self, cost: float) -> None:
        if cost < 0 or cost > self._capacity:
            raise ValueError(
                f"cost must be between 0 and capacity ({self._capacity}), got {cost}"
            )

    def _refill(self, key: Hashable) -> Bucket:
        """Create the bucket for `key` if needed and add tokens for elapsed time."""
        now = self._clock()
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = Bucket(tokens=self._capacity, last_refill=now)
            self._buckets[key] = bucket
            return bucket

        elapsed = max(0.0, now - bucket.last_refill)
        bucket.tokens = min(
            self._capacity,
            bucket.tokens + self._tokens_per_interval * (elapsed / self._interval),
        )
        bucket.last_refill = now
        return bucket
