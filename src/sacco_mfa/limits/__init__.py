"""Brute-force and replay protection.

Both components are thread-safe leaves with no I/O and no logging.
"""

from .rate_limiter import InMemoryRateLimiter, RateLimitDecision, RateLimitRecord
from .replay_guard import InMemoryReplayGuard

__all__: list[str] = [
    "InMemoryRateLimiter",
    "RateLimitDecision",
    "RateLimitRecord",
    "InMemoryReplayGuard",
]
