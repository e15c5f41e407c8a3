"""MFA verification exceptions.

Expected verification failures are never raised: they are reported through
``VerificationOutcome.failure_reason``. The exceptions below cover programmer
errors (malformed requests, invalid policies) and configuration or
infrastructure problems that the caller must handle separately.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# BASE ERROR
# ═══════════════════════════════════════════════════════════════


class SaccoMfaError(Exception):
    """Root exception for the sacco_mfa package."""


# ═══════════════════════════════════════════════════════════════
# POLICY ERRORS
# ═══════════════════════════════════════════════════════════════


class InvalidPolicyError(SaccoMfaError, ValueError):
    """Raised when a rate-limit or replay policy is not usable.

    Examples:
        - ``max_hits`` is zero or negative
        - ``window_seconds`` is zero or negative
    """


# ═══════════════════════════════════════════════════════════════
# MFA ERRORS
# ═══════════════════════════════════════════════════════════════


class MfaError(SaccoMfaError):
    """Base class for MFA-related errors."""


class InvalidVerificationRequestError(MfaError, ValueError):
    """Raised when a verification request is malformed.

    Used for programmer errors only: an unsupported factor name, a missing
    user id, or a missing token for a factor that needs one.
    """


class MfaSetupError(MfaError):
    """Raised when a required collaborator is not configured.

    Examples:
        - Passkey verification requested without a passkey verifier
    """


class SecretDecryptionError(MfaError):
    """Raised when a stored TOTP secret cannot be decoded or is not Base32."""


class PasskeyVerifierUnavailableError(MfaError):
    """Raised by a passkey verifier when it cannot reach a verdict.

    The verifier maps this to a non-counting ``assertion_failed`` outcome so
    that infrastructure errors never lock a user out.
    """


__all__: list[str] = [
    "SaccoMfaError",
    "InvalidPolicyError",
    "MfaError",
    "InvalidVerificationRequestError",
    "MfaSetupError",
    "SecretDecryptionError",
    "PasskeyVerifierUnavailableError",
]
