"""Audit events for MFA verification.

One event is produced per terminal outcome: success, backup success, failure,
or rate-limit rejection. Events never carry tokens, codes or raw IP addresses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..types import AuditAction, Factor

if TYPE_CHECKING:
    from ..types import VerificationOutcome


@dataclass(frozen=True)
class MfaAuditEvent:
    """MFA audit event.

    Attributes:
        action: Audit action for the terminal outcome.
        user_id: User the attempt was made for.
        factor: Factor claimed (None for rate-limit rejections before dispatch).
        success: Whether the attempt succeeded.
        timestamp: When the event occurred (UTC).
        hashed_ip: SHA-256 of the client IP (if available).
        request_id: Correlation ID for request tracing.
        details: Event-specific data (reason, step, remaining codes, scope).
    """

    action: AuditAction
    user_id: str
    factor: Factor | None = None
    success: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    hashed_ip: str | None = None
    request_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "action": self.action.value,
            "user_id": self.user_id,
            "factor": self.factor.value if self.factor else None,
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
            "hashed_ip": self.hashed_ip,
            "request_id": self.request_id,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MfaAuditEvent:
        """Create event from dictionary.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        action_str = data.get("action")
        if action_str is None:
            raise ValueError("Missing required 'action'")
        try:
            action = AuditAction(action_str)
        except ValueError as e:
            raise ValueError(f"Invalid action: {action_str}") from e

        user_id = data.get("user_id")
        if not user_id:
            raise ValueError("Missing required 'user_id'")

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
        elif timestamp is None:
            timestamp = datetime.now(timezone.utc)

        factor = data.get("factor")
        return cls(
            action=action,
            user_id=user_id,
            factor=Factor.parse(factor) if factor else None,
            success=data.get("success", True),
            timestamp=timestamp,
            hashed_ip=data.get("hashed_ip"),
            request_id=data.get("request_id"),
            details=data.get("details", {}),
        )


# ═══════════════════════════════════════════════════════════════
# EVENT FACTORY FUNCTIONS
# ═══════════════════════════════════════════════════════════════


def outcome_event(
    outcome: VerificationOutcome,
    user_id: str,
    *,
    hashed_ip: str | None = None,
    request_id: str | None = None,
) -> MfaAuditEvent:
    """Create the event for a verification outcome."""
    return MfaAuditEvent(
        action=outcome.audit_action,
        user_id=user_id,
        factor=outcome.factor,
        success=outcome.ok,
        hashed_ip=hashed_ip,
        request_id=request_id,
        details=dict(outcome.audit_details),
    )


def rate_limited_event(
    user_id: str,
    scope: str,
    *,
    retry_at: datetime | None = None,
    factor: Factor | None = None,
    hashed_ip: str | None = None,
    request_id: str | None = None,
) -> MfaAuditEvent:
    """Create a rate-limit rejection event."""
    details: dict[str, Any] = {"scope": scope}
    if retry_at is not None:
        details["retry_at"] = retry_at.isoformat()
    return MfaAuditEvent(
        action=AuditAction.MFA_RATE_LIMITED,
        user_id=user_id,
        factor=factor,
        success=False,
        hashed_ip=hashed_ip,
        request_id=request_id,
        details=details,
    )


__all__: list[str] = [
    "MfaAuditEvent",
    "outcome_event",
    "rate_limited_event",
]
