"""Factor verification.

``FactorVerifier.verify`` decides whether one submitted factor is valid right
now and returns the state changes the caller must persist. It never touches
storage: the caller passes ``MfaState`` in and persists ``StateDelta`` out.

Each factor is a plain function in ``_HANDLERS``; ``verify`` dispatches once
and applies the common post-processing (audit action, remember-device,
enrollment tags).
"""

from __future__ import annotations

import hmac
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Union

from .exceptions import MfaSetupError, PasskeyVerifierUnavailableError
from .mfa.backup_codes import consume_backup_code
from .mfa.out_of_band import matches_challenge
from .mfa.passkey import parse_assertion_payload
from .mfa.totp import TotpCodec
from .types import (
    AuditAction,
    Factor,
    FailureKind,
    MfaMethod,
    StateDelta,
    VerificationOutcome,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import TotpConfig
    from .ports import IBackupCodeHasher, IPasskeyAssertionVerifier, IReplayGuard
    from .types import VerificationRequest

logger = logging.getLogger(__name__)

_STATUS_FOR_FAILURE: dict[FailureKind, int] = {
    FailureKind.INVALID_CODE: 401,
    FailureKind.INVALID_BACKUP_CODE: 401,
    FailureKind.INVALID_OUT_OF_BAND_CODE: 401,
    FailureKind.ASSERTION_FAILED: 401,
    FailureKind.NOT_ENROLLED: 400,
}


@dataclass(frozen=True)
class _Accepted:
    method: MfaMethod
    delta: StateDelta = field(default_factory=StateDelta)
    used_backup: bool = False
    remember_device: bool = False
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _Rejected:
    reason: FailureKind
    status: int | None = None


_Verdict = Union[_Accepted, _Rejected]

# Assertion material that never goes into audit details
_PASSKEY_SECRET_DETAILS = frozenset(
    {
        "signature",
        "authenticatorData",
        "clientDataJSON",
        "userHandle",
        "challenge",
        "credentialPublicKey",
        "credential_public_key",
    }
)


class FactorVerifier:
    """Verifies TOTP, backup, email, WhatsApp and passkey factors.

    Example:
        ```python
        verifier = FactorVerifier(
            replay_guard=InMemoryReplayGuard(ttl_seconds=90),
            backup_hasher=Pbkdf2BackupCodeHasher(pepper=pepper),
            out_of_band_pepper=pepper,
            secret_decoder=AesGcmSecretBox.from_base64_key(data_key).decrypt,
        )

        outcome = verifier.verify(
            VerificationRequest(
                factor=Factor.TOTP,
                token="123456",
                user_id="user-123",
                state=state,
            )
        )
        if outcome.ok:
            await store.save("user-123", state.apply(outcome.state_delta))
        ```
    """

    def __init__(
        self,
        *,
        replay_guard: IReplayGuard,
        totp: TotpCodec | TotpConfig | None = None,
        backup_hasher: IBackupCodeHasher | None = None,
        out_of_band_pepper: str = "",
        passkey_verifier: IPasskeyAssertionVerifier | None = None,
        secret_decoder: Callable[[str], str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the verifier.

        Args:
            replay_guard: Guard consulted for every matching TOTP step.
            totp: TOTP codec or configuration (default 6 digits, 30 s, ±1 step).
            backup_hasher: One-way function used when backup codes were issued.
            out_of_band_pepper: Pepper used when email/WhatsApp digests were made.
            passkey_verifier: Platform authenticator verifier.
            secret_decoder: Turns the stored TOTP secret into Base32 (e.g. decrypts it).
            clock: Returns the current time in epoch seconds.
        """
        self.replay_guard = replay_guard
        self.totp = totp if isinstance(totp, TotpCodec) else TotpCodec(totp)
        self.backup_hasher = backup_hasher
        self.out_of_band_pepper = out_of_band_pepper
        self.passkey_verifier = passkey_verifier
        self.secret_decoder = secret_decoder
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def decode_secret(self, stored: str) -> str:
        if self.secret_decoder is None:
            return stored
        return self.secret_decoder(stored)

    def verify(self, request: VerificationRequest) -> VerificationOutcome:
        """Verify one factor attempt.

        Args:
            request: Factor, token, user and current MFA state.

        Returns:
            VerificationOutcome. Expected failures are reported here, never raised.

        Raises:
            MfaSetupError: If the factor needs a collaborator that is not configured.
            SecretDecryptionError: If the stored TOTP secret cannot be decoded.
        """
        handler = _HANDLERS[request.factor]
        verdict = handler(self, request)

        if isinstance(verdict, _Rejected):
            logger.debug(
                "MFA %s verification failed for user %s: %s",
                request.factor.value,
                request.user_id,
                verdict.reason.value,
            )
            return VerificationOutcome(
                ok=False,
                factor=request.factor,
                failure_reason=verdict.reason,
                http_status_hint=verdict.status or _STATUS_FOR_FAILURE[verdict.reason],
                audit_action=AuditAction.MFA_FAILED,
                audit_details={
                    "factor": request.factor.value,
                    "reason": verdict.reason.value,
                },
            )

        state = request.state
        delta = verdict.delta
        if verdict.method not in state.methods:
            # Enrollment is a side effect of first successful use
            delta = StateDelta(
                next_last_accepted_step=delta.next_last_accepted_step,
                next_backup_code_hashes=delta.next_backup_code_hashes,
                next_methods=state.methods | {verdict.method},
                passkey_enrolled=delta.passkey_enrolled,
            )

        return VerificationOutcome(
            ok=True,
            factor=request.factor,
            http_status_hint=200,
            state_delta=delta,
            used_backup=verdict.used_backup,
            remember_device=request.remember_device_requested or verdict.remember_device,
            audit_action=(
                AuditAction.MFA_BACKUP_SUCCESS
                if verdict.used_backup
                else AuditAction.MFA_SUCCESS
            ),
            audit_details={**verdict.details, "factor": request.factor.value},
        )


# ═══════════════════════════════════════════════════════════════
# FACTOR HANDLERS
# ═══════════════════════════════════════════════════════════════


def _verify_totp(verifier: FactorVerifier, request: VerificationRequest) -> _Verdict:
    state = request.state
    if not state.totp_secret:
        return _Rejected(FailureKind.NOT_ENROLLED)

    codec = verifier.totp
    token = codec.sanitize(request.token or "")
    if token is None:
        return _Rejected(FailureKind.INVALID_CODE)

    secret = verifier.decode_secret(state.totp_secret)
    codec.check_secret(secret)

    for step in codec.candidate_steps(verifier.now()):
        # Candidates are most recent first, so every later step is older still
        if state.last_accepted_step is not None and step <= state.last_accepted_step:
            break
        if not hmac.compare_digest(codec.code_at_step(secret, step), token):
            continue
        if not verifier.replay_guard.consume_if_unseen(request.user_id, step):
            logger.debug("TOTP step %d replayed for user %s", step, request.user_id)
            continue
        return _Accepted(
            method=MfaMethod.TOTP,
            delta=StateDelta(next_last_accepted_step=step),
            details={"step": step},
        )

    return _Rejected(FailureKind.INVALID_CODE)


def _verify_backup(verifier: FactorVerifier, request: VerificationRequest) -> _Verdict:
    if verifier.backup_hasher is None:
        raise MfaSetupError(
            "Backup code verification requires a backup_hasher. "
            "Provide an IBackupCodeHasher when creating FactorVerifier."
        )

    hashes = request.state.backup_code_hashes
    if not hashes:
        return _Rejected(FailureKind.NOT_ENROLLED)

    remaining = consume_backup_code(verifier.backup_hasher, request.token or "", hashes)
    if remaining is None:
        return _Rejected(FailureKind.INVALID_BACKUP_CODE)

    return _Accepted(
        method=MfaMethod.TOTP,
        delta=StateDelta(next_backup_code_hashes=remaining),
        used_backup=True,
        details={"remaining_backup_codes": len(remaining)},
    )


def _verify_out_of_band(
    verifier: FactorVerifier, request: VerificationRequest
) -> _Verdict:
    challenge = request.out_of_band
    if challenge is None or challenge.channel is not request.factor:
        return _Rejected(FailureKind.NOT_ENROLLED)

    now = datetime.fromtimestamp(verifier.now(), tz=timezone.utc)
    if not matches_challenge(
        challenge,
        request.token or "",
        pepper=verifier.out_of_band_pepper,
        now=now,
    ):
        return _Rejected(FailureKind.INVALID_OUT_OF_BAND_CODE)

    method = MfaMethod.EMAIL if request.factor is Factor.EMAIL else MfaMethod.WHATSAPP
    return _Accepted(method=method, details={"channel": request.factor.value})


def _verify_passkey(verifier: FactorVerifier, request: VerificationRequest) -> _Verdict:
    if verifier.passkey_verifier is None:
        raise MfaSetupError(
            "Passkey verification requires a passkey_verifier. "
            "Provide an IPasskeyAssertionVerifier when creating FactorVerifier."
        )

    assertion = parse_assertion_payload(request.token or "")
    if assertion is None:
        return _Rejected(FailureKind.ASSERTION_FAILED, status=400)

    try:
        result = verifier.passkey_verifier.verify_assertion(request.user_id, assertion)
    except PasskeyVerifierUnavailableError as e:
        logger.warning(
            "Passkey verifier unavailable for user %s: %s", request.user_id, e
        )
        return _Rejected(FailureKind.ASSERTION_FAILED, status=503)

    if not result.ok:
        return _Rejected(FailureKind.ASSERTION_FAILED)

    details: dict[str, Any] = {
        key: value
        for key, value in result.details.items()
        if key not in _PASSKEY_SECRET_DETAILS
    }
    if result.credential_id:
        details["credential_id"] = result.credential_id
    if result.device_type:
        details["device_type"] = result.device_type

    return _Accepted(
        method=MfaMethod.PASSKEY,
        delta=StateDelta(passkey_enrolled=True),
        remember_device=result.remember_device,
        details=details,
    )


_HANDLERS: dict[Factor, Callable[[FactorVerifier, VerificationRequest], _Verdict]] = {
    Factor.TOTP: _verify_totp,
    Factor.BACKUP: _verify_backup,
    Factor.EMAIL: _verify_out_of_band,
    Factor.WHATSAPP: _verify_out_of_band,
    Factor.PASSKEY: _verify_passkey,
}


__all__: list[str] = ["FactorVerifier"]
