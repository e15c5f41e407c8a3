"""Fixed-window attempt counter for brute-force protection.

One counter per key (for example ``mfa:<user_id>`` or ``mfa-ip:<hashed ip>``).
Increment-and-compare happens under the lock of the key's shard, so concurrent
callers on one key observe exactly ``max_hits`` successes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..exceptions import InvalidPolicyError
from ._shards import DEFAULT_SHARD_COUNT, Shard, ShardedMap

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config import RateLimitPolicy


@dataclass
class RateLimitRecord:
    """Counter state for one key.

    Attributes:
        key: Bucket identifier.
        hit_count: Hits recorded in the current window.
        window_start: Epoch seconds when the current window opened.
        window_seconds: Window length the record was opened with.
    """

    key: str
    hit_count: int
    window_start: float
    window_seconds: float

    def elapsed(self, now: float) -> bool:
        return now - self.window_start >= self.window_seconds


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of ``check_and_consume``.

    Attributes:
        allowed: Whether the attempt may proceed.
        retry_at: When the window reopens; set only when rejected.
        hit_count: Hits counted in the current window, this one included.
        remaining: Attempts left in the current window.
    """

    allowed: bool
    retry_at: datetime | None = None
    hit_count: int = 0
    remaining: int = 0


class InMemoryRateLimiter:
    """In-process fixed-window rate limiter.

    Works across threads of one process. For several worker processes, put an
    implementation of ``IRateLimiter`` backed by a shared cache behind the
    same contract.

    Example:
        ```python
        limiter = InMemoryRateLimiter()
        decision = limiter.check_and_consume("mfa:user-123", 5, 300)
        if not decision.allowed:
            return too_many_requests(decision.retry_at)
        ```
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        shard_count: int = DEFAULT_SHARD_COUNT,
        sweep_every: int = 256,
    ) -> None:
        """Initialize the limiter.

        Args:
            clock: Returns the current time in epoch seconds.
            shard_count: Number of independently locked shards.
            sweep_every: Calls per shard between sweeps of elapsed windows.
        """
        self._clock = clock
        self._sweep_every = sweep_every
        self._records: ShardedMap[str, RateLimitRecord] = ShardedMap(shard_count)

    def check_and_consume(
        self,
        key: str,
        max_hits: int,
        window_seconds: float,
    ) -> RateLimitDecision:
        """Count one attempt for ``key`` and decide whether it may proceed.

        Args:
            key: Bucket identifier.
            max_hits: Attempts allowed per window.
            window_seconds: Window length in seconds.

        Returns:
            RateLimitDecision for this attempt.

        Raises:
            InvalidPolicyError: If ``max_hits`` or ``window_seconds`` is not positive.
        """
        if max_hits <= 0:
            raise InvalidPolicyError(f"max_hits must be positive, got {max_hits}")
        if window_seconds <= 0:
            raise InvalidPolicyError(
                f"window_seconds must be positive, got {window_seconds}"
            )

        shard = self._records.shard_for(key)
        with shard.lock:
            now = self._clock()
            self._maybe_sweep(shard, now)

            record = shard.entries.get(key)
            if record is None or now - record.window_start >= window_seconds:
                record = RateLimitRecord(
                    key=key,
                    hit_count=1,
                    window_start=now,
                    window_seconds=window_seconds,
                )
                shard.entries[key] = record
            else:
                record.hit_count += 1

            hit_count = record.hit_count
            window_start = record.window_start

        if hit_count <= max_hits:
            return RateLimitDecision(
                allowed=True,
                hit_count=hit_count,
                remaining=max_hits - hit_count,
            )

        return RateLimitDecision(
            allowed=False,
            retry_at=datetime.fromtimestamp(
                window_start + window_seconds, tz=timezone.utc
            ),
            hit_count=hit_count,
            remaining=0,
        )

    def check_policy(self, key: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Shorthand for ``check_and_consume`` with a ``RateLimitPolicy``."""
        return self.check_and_consume(key, policy.max_hits, policy.window_seconds)

    def _maybe_sweep(self, shard: Shard[str, RateLimitRecord], now: float) -> None:
        """Drop records whose window elapsed. Caller holds the shard lock."""
        shard.calls_since_sweep += 1
        if shard.calls_since_sweep < self._sweep_every:
            return
        shard.calls_since_sweep = 0
        stale = [key for key, record in shard.entries.items() if record.elapsed(now)]
        for key in stale:
            del shard.entries[key]

    def reset(self, key: str) -> None:
        """Forget the counter for one key."""
        shard = self._records.shard_for(key)
        with shard.lock:
            shard.entries.pop(key, None)

    def reset_all(self) -> None:
        """Clear every counter.

        Useful for test isolation; production code never calls it.
        """
        self._records.clear()


__all__: list[str] = [
    "RateLimitRecord",
    "RateLimitDecision",
    "InMemoryRateLimiter",
]
