"""SACCO MFA Verification Core

Second-factor verification for SACCO+ staff and member logins.

Decides whether a submitted factor (authenticator code, backup code, email or
WhatsApp code, passkey assertion) is valid right now, with per-user and per-IP
rate limiting and TOTP replay protection. The caller owns the user record:
``MfaState`` goes in, a ``StateDelta`` to persist comes out.

Usage:
    ```python
    from sacco_mfa import (
        Factor,
        FactorVerifier,
        InMemoryReplayGuard,
        MfaState,
        VerificationRequest,
    )

    verifier = FactorVerifier(replay_guard=InMemoryReplayGuard())
    outcome = verifier.verify(
        VerificationRequest(
            factor=Factor.TOTP,
            token="123456",
            user_id="user-123",
            state=MfaState(totp_secret=secret),
        )
    )
    ```

Submodules:
    - `limits`: rate limiter and replay guard
    - `mfa`: TOTP, backup codes, email/WhatsApp codes, passkey payloads, secret box
    - `audit`: audit events and in-memory store
    - `observability`: Prometheus metrics
    - `flow`: async reference caller over ports
"""

from __future__ import annotations

# Audit
from .audit import (
    InMemoryMfaAuditStore,
    MfaAuditEvent,
    outcome_event,
    rate_limited_event,
)

# Configuration
from .config import MfaPolicy, RateLimitPolicy, TotpConfig

# Exceptions
from .exceptions import (
    InvalidPolicyError,
    InvalidVerificationRequestError,
    MfaError,
    MfaSetupError,
    PasskeyVerifierUnavailableError,
    SaccoMfaError,
    SecretDecryptionError,
)

# Flow
from .flow import (
    MfaFlowResult,
    MfaVerificationFlow,
    RateLimitRejection,
    hash_ip_address,
)

# Limits
from .limits import (
    InMemoryRateLimiter,
    InMemoryReplayGuard,
    RateLimitDecision,
    RateLimitRecord,
)

# Factor primitives
from .mfa import (
    AesGcmSecretBox,
    BackupCodeIssuer,
    BcryptBackupCodeHasher,
    IssuedBackupCode,
    OutOfBandCodeIssuer,
    Pbkdf2BackupCodeHasher,
    TotpCodec,
)

# Observability
from .observability import MfaMetrics

# Payloads
from .payloads import MfaVerifyPayload

# Ports
from .ports import (
    IBackupCodeHasher,
    IMfaAuditStore,
    IMfaStateStore,
    IPasskeyAssertionVerifier,
    IRateLimiter,
    IReplayGuard,
    ISessionIssuer,
    PasskeyAssertionResult,
)

# State storage
from .state import InMemoryMfaStateStore

# Types
from .types import (
    AuditAction,
    Factor,
    FailureKind,
    MfaMethod,
    MfaState,
    OutOfBandChallenge,
    StateDelta,
    VerificationOutcome,
    VerificationRequest,
)

# Verifier
from .verifier import FactorVerifier

__all__: list[str] = [
    # Types
    "AuditAction",
    "Factor",
    "FailureKind",
    "MfaMethod",
    "MfaState",
    "OutOfBandChallenge",
    "StateDelta",
    "VerificationOutcome",
    "VerificationRequest",
    # Configuration
    "MfaPolicy",
    "RateLimitPolicy",
    "TotpConfig",
    # Exceptions
    "SaccoMfaError",
    "InvalidPolicyError",
    "MfaError",
    "InvalidVerificationRequestError",
    "MfaSetupError",
    "SecretDecryptionError",
    "PasskeyVerifierUnavailableError",
    # Ports
    "IRateLimiter",
    "IReplayGuard",
    "IBackupCodeHasher",
    "IPasskeyAssertionVerifier",
    "PasskeyAssertionResult",
    "IMfaStateStore",
    "IMfaAuditStore",
    "ISessionIssuer",
    # Limits
    "InMemoryRateLimiter",
    "InMemoryReplayGuard",
    "RateLimitDecision",
    "RateLimitRecord",
    # Factor primitives
    "TotpCodec",
    "BackupCodeIssuer",
    "IssuedBackupCode",
    "Pbkdf2BackupCodeHasher",
    "BcryptBackupCodeHasher",
    "OutOfBandCodeIssuer",
    "AesGcmSecretBox",
    # Verifier
    "FactorVerifier",
    # Flow
    "MfaVerificationFlow",
    "MfaFlowResult",
    "RateLimitRejection",
    "hash_ip_address",
    "MfaVerifyPayload",
    "InMemoryMfaStateStore",
    # Audit
    "MfaAuditEvent",
    "outcome_event",
    "rate_limited_event",
    "InMemoryMfaAuditStore",
    # Observability
    "MfaMetrics",
]
