"""Tests for value types and configuration."""

from __future__ import annotations

import pytest

from sacco_mfa import (
    Factor,
    FailureKind,
    InvalidPolicyError,
    InvalidVerificationRequestError,
    MfaMethod,
    MfaPolicy,
    MfaState,
    RateLimitPolicy,
    StateDelta,
    TotpConfig,
    VerificationOutcome,
)


class TestFactor:
    def test_parse(self) -> None:
        assert Factor.parse("TOTP ") is Factor.TOTP
        assert Factor.parse(Factor.PASSKEY) is Factor.PASSKEY

    def test_parse_unknown(self) -> None:
        with pytest.raises(InvalidVerificationRequestError, match="sms"):
            Factor.parse("sms")


class TestMfaState:
    """Test state transitions."""

    def test_coerces_storage_values(self) -> None:
        state = MfaState(backup_code_hashes=["a", "b"], methods=["TOTP", "EMAIL"])

        assert state.backup_code_hashes == ("a", "b")
        assert state.methods == frozenset({MfaMethod.TOTP, MfaMethod.EMAIL})

    def test_apply_resets_failures(self) -> None:
        state = MfaState(failed_attempt_count=3)
        assert state.apply(StateDelta()).failed_attempt_count == 0

    def test_apply_never_moves_step_backwards(self) -> None:
        state = MfaState(last_accepted_step=100)

        assert state.apply(StateDelta(next_last_accepted_step=99)).last_accepted_step == 100
        assert state.apply(StateDelta(next_last_accepted_step=101)).last_accepted_step == 101

    def test_apply_leaves_unset_fields(self) -> None:
        state = MfaState(
            totp_secret="S",
            backup_code_hashes=("a",),
            methods=frozenset({MfaMethod.TOTP}),
        )

        new_state = state.apply(StateDelta(passkey_enrolled=True))

        assert new_state.totp_secret == "S"
        assert new_state.backup_code_hashes == ("a",)
        assert new_state.methods == frozenset({MfaMethod.TOTP})
        assert new_state.passkey_enrolled

    def test_with_failed_attempt(self) -> None:
        state = MfaState().with_failed_attempt().with_failed_attempt()
        assert state.failed_attempt_count == 2


class TestVerificationOutcome:
    @pytest.mark.parametrize(
        ("ok", "status", "expected"),
        [(True, 200, False), (False, 401, True), (False, 400, True), (False, 503, False)],
    )
    def test_counts_toward_lockout(self, ok, status, expected) -> None:
        outcome = VerificationOutcome(
            ok=ok,
            factor=Factor.TOTP,
            failure_reason=None if ok else FailureKind.INVALID_CODE,
            http_status_hint=status,
        )
        assert outcome.counts_toward_lockout is expected


class TestConfig:
    """Test policy configuration."""

    def test_defaults(self) -> None:
        policy = MfaPolicy()

        assert policy.totp == TotpConfig(digits=6, interval=30, valid_window=1)
        assert policy.replay_ttl_seconds == 90
        assert policy.user_rate_limit == RateLimitPolicy(5, 300)
        assert policy.ip_rate_limit == RateLimitPolicy(10, 300)
        assert policy.out_of_band_ttl_seconds == 600

    @pytest.mark.parametrize(("max_hits", "window"), [(0, 300), (5, 0), (5, -1)])
    def test_invalid_rate_limit_policy(self, max_hits, window) -> None:
        with pytest.raises(InvalidPolicyError):
            RateLimitPolicy(max_hits, window)

    def test_invalid_replay_ttl(self) -> None:
        with pytest.raises(InvalidPolicyError):
            MfaPolicy(replay_ttl_seconds=0)

    def test_invalid_policy_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            RateLimitPolicy(0, 300)
