"""Unit tests for MFA metrics."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from prometheus_client import CollectorRegistry

from sacco_mfa import Factor, FailureKind, MfaMetrics, VerificationOutcome


class TestMfaMetrics:
    """Tests for MfaMetrics."""

    @pytest.fixture
    def registry(self) -> CollectorRegistry:
        return CollectorRegistry()

    def test_record_outcome(self, registry) -> None:
        metrics = MfaMetrics(registry=registry)

        metrics.record_outcome(VerificationOutcome(ok=True, factor=Factor.TOTP))
        metrics.record_outcome(
            VerificationOutcome(
                ok=False,
                factor=Factor.BACKUP,
                failure_reason=FailureKind.INVALID_BACKUP_CODE,
                http_status_hint=401,
            )
        )

        assert registry.get_sample_value(
            "mfa_verifications_total",
            {"factor": "totp", "result": "success", "reason": ""},
        ) == 1.0
        assert registry.get_sample_value(
            "mfa_verifications_total",
            {"factor": "backup", "result": "failure", "reason": "invalid_backup_code"},
        ) == 1.0

    def test_record_rate_limited(self, registry) -> None:
        metrics = MfaMetrics(registry=registry)

        metrics.record_rate_limited("user")
        metrics.record_rate_limited("user")

        assert registry.get_sample_value("mfa_rate_limited_total", {"scope": "user"}) == 2.0

    def test_timed(self, registry) -> None:
        metrics = MfaMetrics(registry=registry)

        with metrics.timed(Factor.PASSKEY):
            pass

        assert registry.get_sample_value(
            "mfa_verify_duration_seconds_count", {"factor": "passkey"}
        ) == 1.0

    def test_timed_reraises(self, registry) -> None:
        metrics = MfaMetrics(registry=registry)

        with pytest.raises(RuntimeError), metrics.timed(Factor.TOTP):
            raise RuntimeError("boom")

        assert registry.get_sample_value(
            "mfa_verify_duration_seconds_count", {"factor": "totp"}
        ) == 1.0

    def test_recording_never_raises(self, registry) -> None:
        """Test a broken collector does not surface errors."""
        metrics = MfaMetrics(registry=registry)
        broken = MagicMock()
        broken.labels.side_effect = RuntimeError("collector broken")
        metrics._metrics._initialized = True
        metrics._metrics._verifications = broken
        metrics._metrics._rate_limited = broken
        metrics._metrics._duration = broken

        metrics.record_outcome(VerificationOutcome(ok=True, factor=Factor.TOTP))
        metrics.record_rate_limited("ip")
        with metrics.timed(Factor.TOTP):
            pass

    def test_default_instances_share_collectors(self) -> None:
        first = MfaMetrics()
        second = MfaMetrics()

        first.record_rate_limited("ip")
        second.record_rate_limited("ip")

        assert first._metrics is second._metrics
