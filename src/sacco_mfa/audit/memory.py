"""In-memory audit store for testing and development."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..types import AuditAction
    from .events import MfaAuditEvent


class InMemoryMfaAuditStore:
    """In-memory implementation of ``IMfaAuditStore``.

    Note:
        Events are stored in memory and will be lost on restart.
        Not suitable for production use.

    Example:
        ```python
        store = InMemoryMfaAuditStore()
        await store.record(outcome_event(outcome, "user-123"))
        events = await store.get_events("user-123")
        ```
    """

    def __init__(self) -> None:
        self._events: list[MfaAuditEvent] = []
        self._by_user: dict[str, list[int]] = defaultdict(list)
        self._by_action: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: MfaAuditEvent) -> None:
        """Record an audit event."""
        index = len(self._events)
        self._events.append(event)
        self._by_user[event.user_id].append(index)
        self._by_action[event.action.value].append(index)

    async def get_events(
        self,
        user_id: str,
        *,
        actions: list[AuditAction] | None = None,
        limit: int = 100,
    ) -> list[MfaAuditEvent]:
        """Get audit events for a user.

        Args:
            user_id: User ID to query.
            actions: Optional filter by actions.
            limit: Maximum number of events to return.

        Returns:
            List of audit events, most recent first.
        """
        results: list[MfaAuditEvent] = []
        for idx in reversed(self._by_user.get(user_id, [])):
            event = self._events[idx]
            if actions and event.action not in actions:
                continue
            results.append(event)
            if len(results) >= limit:
                break
        return results

    async def get_events_by_action(
        self,
        action: AuditAction,
        *,
        limit: int = 100,
    ) -> list[MfaAuditEvent]:
        """Get audit events by action across all users, most recent first."""
        indices = self._by_action.get(action.value, [])
        return [self._events[idx] for idx in reversed(indices)][:limit]

    def clear(self) -> None:
        """Clear all stored events.

        Useful for test cleanup.
        """
        self._events.clear()
        self._by_user.clear()
        self._by_action.clear()

    def count(self) -> int:
        return len(self._events)

    def count_by_action(self, action: AuditAction) -> int:
        return len(self._by_action.get(action.value, []))

    def count_by_user(self, user_id: str) -> int:
        return len(self._by_user.get(user_id, []))


__all__: list[str] = ["InMemoryMfaAuditStore"]
