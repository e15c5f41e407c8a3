"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pyotp
import pytest
from prometheus_client import CollectorRegistry

from sacco_mfa import (
    FactorVerifier,
    InMemoryReplayGuard,
    MfaMetrics,
    PasskeyAssertionResult,
    PasskeyVerifierUnavailableError,
    Pbkdf2BackupCodeHasher,
)

# Start of a 30-second step
START_TS = 1_700_000_010.0
TEST_SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"
TEST_PEPPER = "test-pepper"


class FrozenClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, now: float = START_TS) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePasskeyVerifier:
    """Passkey verifier returning a preset result."""

    def __init__(
        self,
        result: PasskeyAssertionResult | None = None,
        *,
        unavailable: bool = False,
    ) -> None:
        self.result = result or PasskeyAssertionResult(ok=True)
        self.unavailable = unavailable
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def verify_assertion(
        self, user_id: str, assertion: dict[str, Any]
    ) -> PasskeyAssertionResult:
        self.calls.append((user_id, assertion))
        if self.unavailable:
            raise PasskeyVerifierUnavailableError("challenge store unreachable")
        return self.result


class RecordingSessionIssuer:
    """Session issuer that records every call."""

    def __init__(self) -> None:
        self.issued: list[tuple[str, bool]] = []

    async def issue(self, user_id: str, *, remember_device: bool) -> dict[str, Any]:
        self.issued.append((user_id, remember_device))
        return {"session_id": f"session-{user_id}", "trusted": remember_device}


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at the start of a TOTP step."""
    return FrozenClock()


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def pepper() -> str:
    return TEST_PEPPER


@pytest.fixture
def hasher() -> Pbkdf2BackupCodeHasher:
    """PBKDF2 hasher with a low iteration count for fast tests."""
    return Pbkdf2BackupCodeHasher(pepper=TEST_PEPPER, iterations=1_000)


@pytest.fixture
def current_step(clock: FrozenClock) -> int:
    return int(clock.now // 30)


@pytest.fixture
def totp_code(secret: str) -> Callable[[int], str]:
    """Return a function deriving the code for a step, independently of the codec."""
    totp = pyotp.TOTP(secret)

    def _code(step: int) -> str:
        return totp.at(step * 30)

    return _code


@pytest.fixture
def wrong_code(totp_code: Callable[[int], str]) -> Callable[[int], str]:
    """Return a function giving a code that matches none of the tolerated steps."""

    def _wrong(step: int) -> str:
        valid = {totp_code(s) for s in (step - 1, step, step + 1)}
        return next(c for c in ("000000", "111111", "222222", "333333") if c not in valid)

    return _wrong


@pytest.fixture
def replay_guard(clock: FrozenClock) -> InMemoryReplayGuard:
    return InMemoryReplayGuard(ttl_seconds=90, clock=clock)


@pytest.fixture
def passkey_verifier() -> FakePasskeyVerifier:
    return FakePasskeyVerifier(
        PasskeyAssertionResult(
            ok=True,
            credential_id="cred-1",
            device_type="multiDevice",
        )
    )


@pytest.fixture
def verifier(
    clock: FrozenClock,
    replay_guard: InMemoryReplayGuard,
    hasher: Pbkdf2BackupCodeHasher,
    pepper: str,
    passkey_verifier: FakePasskeyVerifier,
) -> FactorVerifier:
    return FactorVerifier(
        replay_guard=replay_guard,
        backup_hasher=hasher,
        out_of_band_pepper=pepper,
        passkey_verifier=passkey_verifier,
        clock=clock,
    )


@pytest.fixture
def metrics() -> MfaMetrics:
    """Metrics bound to an isolated Prometheus registry."""
    return MfaMetrics(registry=CollectorRegistry())


@pytest.fixture
def session_issuer() -> RecordingSessionIssuer:
    return RecordingSessionIssuer()


@pytest.fixture
def passkey_verifier_factory() -> type[FakePasskeyVerifier]:
    """Build passkey verifiers with a chosen result."""
    return FakePasskeyVerifier
