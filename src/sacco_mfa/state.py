"""In-memory MFA state storage for development and testing."""

from __future__ import annotations

from .types import MfaState


class InMemoryMfaStateStore:
    """In-memory implementation of ``IMfaStateStore``.

    ⚠️ WARNING: This implementation stores data in a local dictionary.
    It will NOT work in multi-worker environments.

    Example:
        ```python
        store = InMemoryMfaStateStore()
        await store.save("user-123", MfaState(totp_secret=secret))
        state = await store.load("user-123")
        ```
    """

    def __init__(self, initial: dict[str, MfaState] | None = None) -> None:
        self._states: dict[str, MfaState] = dict(initial or {})

    async def load(self, user_id: str) -> MfaState:
        """Load the state for a user; unknown users get an empty state."""
        return self._states.get(user_id, MfaState())

    async def save(self, user_id: str, state: MfaState) -> None:
        self._states[user_id] = state

    def clear_all(self) -> None:
        """Clear all states (for testing)."""
        self._states.clear()


__all__: list[str] = ["InMemoryMfaStateStore"]
