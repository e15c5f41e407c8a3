"""MFA ports (protocols).

The verification core depends only on the synchronous ports. The async ports
describe the collaborators a caller such as ``MfaVerificationFlow`` needs:
state storage, audit storage, and session issuance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .audit.events import MfaAuditEvent
    from .limits.rate_limiter import RateLimitDecision
    from .types import MfaState


# ═══════════════════════════════════════════════════════════════
# CORE PORTS (synchronous)
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IRateLimiter(Protocol):
    """Protocol for keyed, windowed attempt counters."""

    def check_and_consume(
        self, key: str, max_hits: int, window_seconds: float
    ) -> RateLimitDecision:
        """Count one attempt and decide whether it may proceed.

        Implementations must make increment-and-compare atomic per key.
        """
        ...

    def reset_all(self) -> None:
        """Clear all counters (tests only)."""
        ...


@runtime_checkable
class IReplayGuard(Protocol):
    """Protocol for the consumed-TOTP-step set."""

    def consume_if_unseen(self, user_id: str, step: int) -> bool:
        """Return True and record the pair on first use, False on replay."""
        ...

    def reset_all(self) -> None:
        """Clear all entries (tests only)."""
        ...


@runtime_checkable
class IBackupCodeHasher(Protocol):
    """Protocol for the one-way function applied to backup codes."""

    def hash(self, code: str) -> str:
        """Hash a normalized backup code for storage.

        Args:
            code: Normalized backup code.

        Returns:
            Stored hash string.
        """
        ...

    def verify(self, code: str, stored_hash: str) -> bool:
        """Check a normalized backup code against one stored hash."""
        ...


@dataclass(frozen=True)
class PasskeyAssertionResult:
    """Verdict from the platform authenticator library.

    Attributes:
        ok: Whether the assertion is valid.
        remember_device: Whether the verifier considers the device safe to trust.
        credential_id: Credential used, for audit.
        device_type: Authenticator type reported by the library, for audit.
        details: Extra library-specific data, copied into audit details
            without assertion material (signature, client data, and so on).
    """

    ok: bool
    remember_device: bool = False
    credential_id: str | None = None
    device_type: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class IPasskeyAssertionVerifier(Protocol):
    """Protocol for WebAuthn assertion verification.

    The cryptographic checks live in the application's WebAuthn library; this
    package only orchestrates the call.
    """

    def verify_assertion(
        self, user_id: str, assertion: dict[str, Any]
    ) -> PasskeyAssertionResult:
        """Verify a passkey assertion for a user.

        Args:
            user_id: User identifier.
            assertion: Parsed assertion payload from the browser.

        Returns:
            PasskeyAssertionResult with the verdict.

        Raises:
            PasskeyVerifierUnavailableError: If no verdict can be reached
                (challenge store down, library misconfigured).
        """
        ...


# ═══════════════════════════════════════════════════════════════
# CALLER PORTS (asynchronous)
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IMfaStateStore(Protocol):
    """Protocol for loading and persisting ``MfaState``.

    Applications implement this over their user table. Implementations should
    serialize writes per user.
    """

    async def load(self, user_id: str) -> MfaState:
        """Load the current MFA state for a user."""
        ...

    async def save(self, user_id: str, state: MfaState) -> None:
        """Persist the MFA state for a user."""
        ...


@runtime_checkable
class IMfaAuditStore(Protocol):
    """Protocol for MFA audit event storage."""

    async def record(self, event: MfaAuditEvent) -> None:
        """Record an audit event."""
        ...


@runtime_checkable
class ISessionIssuer(Protocol):
    """Protocol for establishing the authenticated session after MFA."""

    async def issue(self, user_id: str, *, remember_device: bool) -> Any:
        """Issue the MFA session (and trusted-device token if requested).

        Returns:
            Whatever the application needs to build its response (cookies, ids).
        """
        ...


__all__: list[str] = [
    "IRateLimiter",
    "IReplayGuard",
    "IBackupCodeHasher",
    "PasskeyAssertionResult",
    "IPasskeyAssertionVerifier",
    "IMfaStateStore",
    "IMfaAuditStore",
    "ISessionIssuer",
]
