"""Audit module for MFA verification events.

This module provides the audit event model, factory functions, and an
in-memory store for tracking verification outcomes.
"""

from __future__ import annotations

from .events import MfaAuditEvent, outcome_event, rate_limited_event
from .memory import InMemoryMfaAuditStore

__all__: list[str] = [
    # Event classes
    "MfaAuditEvent",
    # Event factory functions
    "outcome_event",
    "rate_limited_event",
    # Store implementations
    "InMemoryMfaAuditStore",
]
