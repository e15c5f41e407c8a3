"""Unit tests for MFA audit events and the in-memory store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sacco_mfa import (
    AuditAction,
    Factor,
    FailureKind,
    InMemoryMfaAuditStore,
    MfaAuditEvent,
    VerificationOutcome,
    outcome_event,
    rate_limited_event,
)


class TestMfaAuditEvent:
    """Tests for MfaAuditEvent."""

    def test_defaults(self) -> None:
        event = MfaAuditEvent(action=AuditAction.MFA_SUCCESS, user_id="user-1")

        assert event.success
        assert event.factor is None
        assert event.timestamp.tzinfo is not None

    def test_to_dict_from_dict(self) -> None:
        event = MfaAuditEvent(
            action=AuditAction.MFA_FAILED,
            user_id="user-1",
            factor=Factor.BACKUP,
            success=False,
            hashed_ip="abc",
            request_id="req-1",
            details={"reason": "invalid_backup_code"},
        )

        data = event.to_dict()
        assert data["action"] == "MFA_FAILED"
        assert data["factor"] == "backup"

        assert MfaAuditEvent.from_dict(data) == event

    def test_from_dict_naive_timestamp_is_utc(self) -> None:
        event = MfaAuditEvent.from_dict(
            {"action": "MFA_SUCCESS", "user_id": "u", "timestamp": "2026-10-19T08:00:00"}
        )
        assert event.timestamp == datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "data",
        [{"user_id": "u"}, {"action": "LOGIN", "user_id": "u"}, {"action": "MFA_SUCCESS"}],
    )
    def test_from_dict_invalid(self, data) -> None:
        with pytest.raises(ValueError):
            MfaAuditEvent.from_dict(data)


class TestFactories:
    """Tests for event factory functions."""

    def test_outcome_event(self) -> None:
        outcome = VerificationOutcome(
            ok=False,
            factor=Factor.TOTP,
            failure_reason=FailureKind.INVALID_CODE,
            http_status_hint=401,
            audit_action=AuditAction.MFA_FAILED,
            audit_details={"factor": "totp", "reason": "invalid_code"},
        )

        event = outcome_event(outcome, "user-1", hashed_ip="h", request_id="r")

        assert event.action is AuditAction.MFA_FAILED
        assert not event.success
        assert event.factor is Factor.TOTP
        assert event.details == {"factor": "totp", "reason": "invalid_code"}
        assert event.hashed_ip == "h"

    def test_rate_limited_event(self) -> None:
        retry_at = datetime(2026, 10, 19, 8, 5, tzinfo=timezone.utc)

        event = rate_limited_event("user-1", "ip", retry_at=retry_at, hashed_ip="h")

        assert event.action is AuditAction.MFA_RATE_LIMITED
        assert not event.success
        assert event.details == {"scope": "ip", "retry_at": retry_at.isoformat()}


class TestInMemoryMfaAuditStore:
    """Tests for InMemoryMfaAuditStore."""

    @pytest.fixture
    def store(self) -> InMemoryMfaAuditStore:
        return InMemoryMfaAuditStore()

    @pytest.mark.asyncio
    async def test_record_and_query(self, store) -> None:
        await store.record(MfaAuditEvent(action=AuditAction.MFA_FAILED, user_id="u1", success=False))
        await store.record(MfaAuditEvent(action=AuditAction.MFA_SUCCESS, user_id="u1"))
        await store.record(MfaAuditEvent(action=AuditAction.MFA_SUCCESS, user_id="u2"))

        events = await store.get_events("u1")
        assert [e.action for e in events] == [AuditAction.MFA_SUCCESS, AuditAction.MFA_FAILED]

        failed = await store.get_events("u1", actions=[AuditAction.MFA_FAILED])
        assert len(failed) == 1

        successes = await store.get_events_by_action(AuditAction.MFA_SUCCESS)
        assert [e.user_id for e in successes] == ["u2", "u1"]

    @pytest.mark.asyncio
    async def test_limit(self, store) -> None:
        for _ in range(5):
            await store.record(MfaAuditEvent(action=AuditAction.MFA_SUCCESS, user_id="u1"))

        assert len(await store.get_events("u1", limit=2)) == 2
        assert len(await store.get_events_by_action(AuditAction.MFA_SUCCESS, limit=3)) == 3

    @pytest.mark.asyncio
    async def test_counts_and_clear(self, store) -> None:
        await store.record(MfaAuditEvent(action=AuditAction.MFA_RATE_LIMITED, user_id="u1"))
        await store.record(MfaAuditEvent(action=AuditAction.MFA_SUCCESS, user_id="u2"))

        assert store.count() == 2
        assert store.count_by_action(AuditAction.MFA_RATE_LIMITED) == 1
        assert store.count_by_user("u2") == 1

        store.clear()

        assert store.count() == 0
        assert await store.get_events("u1") == []
