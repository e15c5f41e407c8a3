"""Lock-striped maps shared by the rate limiter and the replay guard."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from ..exceptions import InvalidPolicyError

if TYPE_CHECKING:
    from collections.abc import Iterator

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_SHARD_COUNT = 64


@dataclass
class Shard(Generic[K, V]):
    """One stripe: a plain dict guarded by its own lock."""

    lock: threading.Lock = field(default_factory=threading.Lock)
    entries: dict[K, V] = field(default_factory=dict)
    calls_since_sweep: int = 0


class ShardedMap(Generic[K, V]):
    """Fixed set of shards selected by key hash.

    Callers hold ``shard.lock`` while reading and mutating ``shard.entries``;
    unrelated keys on different shards never contend.
    """

    def __init__(self, shard_count: int = DEFAULT_SHARD_COUNT) -> None:
        if shard_count <= 0:
            raise InvalidPolicyError(f"shard_count must be positive, got {shard_count}")
        self._shards: tuple[Shard[K, V], ...] = tuple(
            Shard() for _ in range(shard_count)
        )

    def shard_for(self, key: K) -> Shard[K, V]:
        return self._shards[hash(key) % len(self._shards)]

    def __iter__(self) -> Iterator[Shard[K, V]]:
        return iter(self._shards)

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()
                shard.calls_since_sweep = 0


__all__: list[str] = ["DEFAULT_SHARD_COUNT", "Shard", "ShardedMap"]
