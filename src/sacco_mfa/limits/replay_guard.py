"""Time-boxed "seen" set for consumed TOTP steps.

Separate from the verifier's step-monotonicity check: this guard rejects the
same accepted code submitted twice, monotonicity rejects an older code after a
newer one.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from ..exceptions import InvalidPolicyError
from ._shards import DEFAULT_SHARD_COUNT, Shard, ShardedMap

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config import MfaPolicy

ReplayKey = tuple[str, int]


class InMemoryReplayGuard:
    """In-process replay guard keyed by ``(user_id, step)``.

    Entries live for ``ttl_seconds`` and are swept lazily from the shard being
    touched. When ``step_seconds`` is known, an entry also ends as soon as its
    step leaves the ``±valid_window`` tolerance, whichever comes first.

    Example:
        ```python
        guard = InMemoryReplayGuard(ttl_seconds=90)
        if not guard.consume_if_unseen("user-123", step):
            return reject()
        ```
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 90,
        clock: Callable[[], float] = time.time,
        step_seconds: int | None = None,
        valid_window: int = 1,
        shard_count: int = DEFAULT_SHARD_COUNT,
        sweep_every: int = 64,
    ) -> None:
        """Initialize the guard.

        Args:
            ttl_seconds: How long a consumed step stays blocked.
            clock: Returns the current time in epoch seconds.
            step_seconds: TOTP step duration. Caps each entry at the end of its
                step's validity.
            valid_window: Steps tolerated either side of the current one.
            shard_count: Number of independently locked shards.
            sweep_every: Calls per shard between sweeps of expired entries.
        """
        if ttl_seconds <= 0:
            raise InvalidPolicyError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if step_seconds is not None and step_seconds <= 0:
            raise InvalidPolicyError(f"step_seconds must be positive, got {step_seconds}")
        if valid_window < 0:
            raise InvalidPolicyError(f"valid_window must not be negative, got {valid_window}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.step_seconds = step_seconds
        self.valid_window = valid_window
        self._sweep_every = sweep_every
        self._entries: ShardedMap[ReplayKey, float] = ShardedMap(shard_count)

    @classmethod
    def from_policy(
        cls,
        policy: MfaPolicy,
        *,
        clock: Callable[[], float] = time.time,
    ) -> InMemoryReplayGuard:
        """Build a guard bounded by ``policy.replay_ttl_seconds`` and the TOTP window."""
        return cls(
            ttl_seconds=policy.replay_ttl_seconds,
            clock=clock,
            step_seconds=policy.totp.interval,
            valid_window=policy.totp.valid_window,
        )

    def consume_if_unseen(self, user_id: str, step: int) -> bool:
        """Record ``(user_id, step)`` unless it is already live.

        Args:
            user_id: User identifier.
            step: TOTP time step.

        Returns:
            True on the first call for the pair within its lifetime, False otherwise.
        """
        key: ReplayKey = (user_id, step)
        shard = self._entries.shard_for(key)
        with shard.lock:
            now = self._clock()
            self._maybe_sweep(shard, now)

            expires_at = shard.entries.get(key)
            if expires_at is not None and now < expires_at:
                return False

            shard.entries[key] = self._expiry(step, now)
            return True

    def _expiry(self, step: int, now: float) -> float:
        expires_at = now + self.ttl_seconds
        if self.step_seconds is None:
            return expires_at
        # Instant the step falls out of the tolerance window
        valid_until = (step + self.valid_window + 1) * self.step_seconds
        return min(expires_at, valid_until)

    def _maybe_sweep(self, shard: Shard[ReplayKey, float], now: float) -> None:
        shard.calls_since_sweep += 1
        if shard.calls_since_sweep < self._sweep_every:
            return
        shard.calls_since_sweep = 0
        expired = [key for key, expires_at in shard.entries.items() if expires_at <= now]
        for key in expired:
            del shard.entries[key]

    def __len__(self) -> int:
        """Number of live entries."""
        now = self._clock()
        total = 0
        for shard in self._entries:
            with shard.lock:
                total += sum(1 for expires_at in shard.entries.values() if expires_at > now)
        return total

    def reset_all(self) -> None:
        """Forget every consumed step.

        Useful for test isolation; production code never calls it.
        """
        self._entries.clear()


__all__: list[str] = ["InMemoryReplayGuard"]
