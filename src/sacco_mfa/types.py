"""Shared value types for MFA verification.

The caller owns ``MfaState`` and passes it in by value; the verifier returns a
``VerificationOutcome`` carrying the ``StateDelta`` the caller must persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .exceptions import InvalidVerificationRequestError


class Factor(str, Enum):
    """Second factors accepted by the verifier."""

    TOTP = "totp"
    BACKUP = "backup"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    PASSKEY = "passkey"

    @classmethod
    def parse(cls, value: str | Factor) -> Factor:
        """Parse a factor name.

        Raises:
            InvalidVerificationRequestError: If the name is not a known factor.
        """
        if isinstance(value, Factor):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidVerificationRequestError(
                f"Unsupported factor: {value!r}"
            ) from e


class FailureKind(str, Enum):
    """Closed set of verification failure kinds."""

    INVALID_CODE = "invalid_code"
    INVALID_BACKUP_CODE = "invalid_backup_code"
    INVALID_OUT_OF_BAND_CODE = "invalid_out_of_band_code"
    ASSERTION_FAILED = "assertion_failed"
    NOT_ENROLLED = "not_enrolled"


class MfaMethod(str, Enum):
    """Enrollment tags stored on the user record."""

    TOTP = "TOTP"
    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"
    PASSKEY = "PASSKEY"


class AuditAction(str, Enum):
    """Audit actions emitted for terminal outcomes."""

    MFA_SUCCESS = "MFA_SUCCESS"
    MFA_BACKUP_SUCCESS = "MFA_BACKUP_SUCCESS"
    MFA_FAILED = "MFA_FAILED"
    MFA_RATE_LIMITED = "MFA_RATE_LIMITED"


@dataclass(frozen=True)
class StateDelta:
    """Changes to ``MfaState`` produced by a successful verification.

    ``None`` means "leave unchanged".
    """

    next_last_accepted_step: int | None = None
    next_backup_code_hashes: tuple[str, ...] | None = None
    next_methods: frozenset[MfaMethod] | None = None
    passkey_enrolled: bool | None = None


@dataclass(frozen=True)
class MfaState:
    """Snapshot of a user's MFA material.

    Attributes:
        totp_secret: Base32 secret, possibly encrypted (see ``AesGcmSecretBox``).
        last_accepted_step: Highest TOTP step accepted so far.
        backup_code_hashes: Hashes of unused backup codes, in issue order.
        failed_attempt_count: Consecutive failed attempts.
        methods: Methods the user has successfully used at least once.
        passkey_enrolled: Whether a passkey has been verified for this user.
    """

    totp_secret: str | None = None
    last_accepted_step: int | None = None
    backup_code_hashes: tuple[str, ...] = ()
    failed_attempt_count: int = 0
    methods: frozenset[MfaMethod] = frozenset()
    passkey_enrolled: bool = False

    def __post_init__(self) -> None:
        # Accept any iterable from storage adapters
        if not isinstance(self.backup_code_hashes, tuple):
            object.__setattr__(
                self, "backup_code_hashes", tuple(self.backup_code_hashes)
            )
        if not isinstance(self.methods, frozenset):
            object.__setattr__(
                self, "methods", frozenset(MfaMethod(m) for m in self.methods)
            )

    def apply(self, delta: StateDelta) -> MfaState:
        """Return the state after a successful verification.

        Args:
            delta: Delta from a successful ``VerificationOutcome``.

        Returns:
            New state with the delta applied and the failed counter reset.
        """
        last_step = self.last_accepted_step
        if delta.next_last_accepted_step is not None:
            # Never move backwards
            last_step = (
                delta.next_last_accepted_step
                if last_step is None
                else max(last_step, delta.next_last_accepted_step)
            )

        return replace(
            self,
            last_accepted_step=last_step,
            backup_code_hashes=(
                delta.next_backup_code_hashes
                if delta.next_backup_code_hashes is not None
                else self.backup_code_hashes
            ),
            methods=delta.next_methods if delta.next_methods is not None else self.methods,
            passkey_enrolled=(
                delta.passkey_enrolled
                if delta.passkey_enrolled is not None
                else self.passkey_enrolled
            ),
            failed_attempt_count=0,
        )

    def with_failed_attempt(self) -> MfaState:
        """Return the state with one more failed attempt recorded."""
        return replace(self, failed_attempt_count=self.failed_attempt_count + 1)


@dataclass(frozen=True)
class OutOfBandChallenge:
    """Expected value of an email or WhatsApp code.

    Supplied at call time by the collaborator that generated and delivered
    the code.

    Attributes:
        channel: ``Factor.EMAIL`` or ``Factor.WHATSAPP``.
        code_digest: Hex SHA-256 of ``pepper + code``.
        expires_at: Timezone-aware expiry instant.
    """

    channel: Factor
    code_digest: str
    expires_at: datetime

    def __post_init__(self) -> None:
        if self.channel not in (Factor.EMAIL, Factor.WHATSAPP):
            raise InvalidVerificationRequestError(
                f"Out-of-band challenges only exist for email/whatsapp, got {self.channel}"
            )
        if self.expires_at.tzinfo is None:
            raise InvalidVerificationRequestError("expires_at must be timezone-aware")


@dataclass(frozen=True)
class VerificationRequest:
    """One verification attempt.

    Attributes:
        factor: Factor claimed by the user.
        token: Submitted code, or the passkey assertion JSON.
        user_id: User identifier.
        email: User email, carried through for audit details.
        state: Current MFA state loaded by the caller.
        remember_device_requested: Whether the user ticked "trust this device".
        out_of_band: Expected email/WhatsApp code, when applicable.
    """

    factor: Factor
    token: str | None
    user_id: str
    state: MfaState = field(default_factory=MfaState)
    email: str | None = None
    remember_device_requested: bool = False
    out_of_band: OutOfBandChallenge | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "factor", Factor.parse(self.factor))
        if not self.user_id:
            raise InvalidVerificationRequestError("user_id is required")
        if self.token is None or not str(self.token).strip():
            raise InvalidVerificationRequestError(
                f"token is required for factor {self.factor.value}"
            )


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of a single verification attempt.

    Attributes:
        ok: Whether the factor was accepted.
        factor: Factor that was checked.
        failure_reason: Failure kind when ``ok`` is False.
        http_status_hint: Suggested HTTP status for the caller.
        state_delta: Changes the caller must persist on success.
        used_backup: True when a backup code was consumed.
        remember_device: Whether the session may trust this device.
        audit_action: Action to record in the audit log.
        audit_details: Extra audit payload; never contains secrets.
    """

    ok: bool
    factor: Factor
    failure_reason: FailureKind | None = None
    http_status_hint: int = 200
    state_delta: StateDelta = field(default_factory=StateDelta)
    used_backup: bool = False
    remember_device: bool = False
    audit_action: AuditAction = AuditAction.MFA_SUCCESS
    audit_details: dict[str, Any] = field(default_factory=dict)

    @property
    def counts_toward_lockout(self) -> bool:
        """Whether the caller should count this attempt as a user failure."""
        return not self.ok and self.http_status_hint < 500


__all__: list[str] = [
    "Factor",
    "FailureKind",
    "MfaMethod",
    "AuditAction",
    "StateDelta",
    "MfaState",
    "OutOfBandChallenge",
    "VerificationRequest",
    "VerificationOutcome",
]
