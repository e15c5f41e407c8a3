"""Async verification flow over ports.

``MfaVerificationFlow`` is the reference caller of the verification core:
rate limits first, then state load, factor verification, persistence, audit,
and session issuance. It owns no state of its own; every side effect goes
through a port.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from .audit.events import outcome_event, rate_limited_event
from .config import MfaPolicy
from .observability.metrics import MfaMetrics
from .types import Factor, MfaMethod, VerificationRequest

if TYPE_CHECKING:
    from datetime import datetime

    from .payloads import MfaVerifyPayload
    from .ports import IMfaAuditStore, IMfaStateStore, IRateLimiter, ISessionIssuer
    from .types import OutOfBandChallenge, VerificationOutcome
    from .verifier import FactorVerifier

logger = logging.getLogger(__name__)

USER_SCOPE = "user"
IP_SCOPE = "ip"


def hash_ip_address(ip_address: str) -> str:
    """Hex SHA-256 of a client IP, used in rate-limit keys and audit events."""
    return hashlib.sha256(ip_address.strip().encode()).hexdigest()


def user_rate_limit_key(user_id: str) -> str:
    return f"mfa:{user_id}"


def ip_rate_limit_key(hashed_ip: str) -> str:
    return f"mfa-ip:{hashed_ip}"


@dataclass(frozen=True)
class RateLimitRejection:
    """Details of a rate-limit rejection.

    Attributes:
        scope: ``"user"`` or ``"ip"``.
        retry_at: When the window reopens.
        hashed_ip: Hashed client IP, when known.
    """

    scope: str
    retry_at: datetime | None
    hashed_ip: str | None = None


@dataclass(frozen=True)
class MfaFlowResult:
    """Result of one pass through the flow.

    Exactly one of ``outcome`` and ``rate_limit`` is set.

    Attributes:
        outcome: Verification outcome when the verifier ran.
        rate_limit: Rejection details when a limiter blocked the attempt.
        session: Whatever ``ISessionIssuer.issue`` returned on success.
    """

    outcome: VerificationOutcome | None = None
    rate_limit: RateLimitRejection | None = None
    session: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome is not None and self.outcome.ok

    @property
    def http_status(self) -> int:
        if self.rate_limit is not None:
            return 429
        return self.outcome.http_status_hint if self.outcome is not None else 500


class MfaVerificationFlow:
    """Orchestrates one MFA verification attempt.

    Example:
        ```python
        flow = MfaVerificationFlow(
            verifier=verifier,
            rate_limiter=InMemoryRateLimiter(),
            state_store=user_mfa_store,
            audit_store=audit_store,
            session_issuer=sessions,
        )
        result = await flow.verify(
            user_id, Factor.TOTP, "123456", ip_address=request.client.host
        )
        if result.rate_limit:
            return too_many_requests(result.rate_limit.retry_at)
        ```
    """

    def __init__(
        self,
        *,
        verifier: FactorVerifier,
        rate_limiter: IRateLimiter,
        state_store: IMfaStateStore,
        audit_store: IMfaAuditStore,
        session_issuer: ISessionIssuer,
        policy: MfaPolicy | None = None,
        metrics: MfaMetrics | None = None,
    ) -> None:
        """Initialize the flow.

        Args:
            verifier: Factor verifier.
            rate_limiter: Limiter shared by every request of the process.
            state_store: Loads and persists ``MfaState``.
            audit_store: Receives one event per terminal outcome.
            session_issuer: Issues the session after a successful factor.
            policy: Rate-limit policies (default 5/300 s per user, 10/300 s per IP).
            metrics: Metrics helper (default shares the process-wide collectors).
        """
        self.verifier = verifier
        self.rate_limiter = rate_limiter
        self.state_store = state_store
        self.audit_store = audit_store
        self.session_issuer = session_issuer
        self.policy = policy or MfaPolicy()
        self.metrics = metrics or MfaMetrics()

    async def verify(
        self,
        user_id: str,
        factor: Factor | str,
        token: str | None,
        *,
        ip_address: str | None = None,
        email: str | None = None,
        remember_device: bool = False,
        out_of_band: OutOfBandChallenge | None = None,
        request_id: str | None = None,
    ) -> MfaFlowResult:
        """Run one verification attempt.

        Raises:
            InvalidVerificationRequestError: If the request is malformed. No
                attempt is counted.
            MfaSetupError: If the verifier lacks a collaborator for the factor.
            SecretDecryptionError: If the stored TOTP secret cannot be decoded.
        """
        # Validate before anything is counted
        request = VerificationRequest(
            factor=factor,
            token=token,
            user_id=user_id,
            email=email,
            remember_device_requested=remember_device,
            out_of_band=out_of_band,
        )
        hashed_ip = hash_ip_address(ip_address) if ip_address else None

        rejection = self._check_limits(user_id, hashed_ip)
        if rejection is not None:
            logger.warning(
                "MFA rate limit (%s) hit for user %s, retry at %s",
                rejection.scope,
                user_id,
                rejection.retry_at,
            )
            self.metrics.record_rate_limited(rejection.scope)
            await self.audit_store.record(
                rate_limited_event(
                    user_id,
                    rejection.scope,
                    retry_at=rejection.retry_at,
                    factor=request.factor,
                    hashed_ip=hashed_ip,
                    request_id=request_id,
                )
            )
            return MfaFlowResult(rate_limit=rejection)

        state = await self.state_store.load(user_id)
        request = replace(request, state=state)

        with self.metrics.timed(request.factor):
            outcome = self.verifier.verify(request)
        self.metrics.record_outcome(outcome)

        event = outcome_event(
            outcome, user_id, hashed_ip=hashed_ip, request_id=request_id
        )

        if not outcome.ok:
            logger.warning(
                "MFA %s failed for user %s: %s (status %d)",
                outcome.factor.value,
                user_id,
                outcome.failure_reason.value if outcome.failure_reason else "unknown",
                outcome.http_status_hint,
            )
            if outcome.counts_toward_lockout:
                await self.state_store.save(user_id, state.with_failed_attempt())
            await self.audit_store.record(event)
            return MfaFlowResult(outcome=outcome)

        await self.state_store.save(user_id, state.apply(outcome.state_delta))
        await self.audit_store.record(event)
        session = await self.session_issuer.issue(
            user_id, remember_device=outcome.remember_device
        )
        logger.info(
            "MFA %s verified for user %s (backup=%s)",
            outcome.factor.value,
            user_id,
            outcome.used_backup,
        )
        return MfaFlowResult(outcome=outcome, session=session)

    async def verify_payload(
        self,
        user_id: str,
        payload: MfaVerifyPayload,
        *,
        ip_address: str | None = None,
        email: str | None = None,
        out_of_band: OutOfBandChallenge | None = None,
        request_id: str | None = None,
    ) -> MfaFlowResult:
        """Run the flow for a validated request body.

        A payload without ``method`` uses email when the user has verified by
        email before, TOTP otherwise.
        """
        factor = payload.method
        if factor is None:
            state = await self.state_store.load(user_id)
            factor = Factor.EMAIL if MfaMethod.EMAIL in state.methods else Factor.TOTP

        return await self.verify(
            user_id,
            factor,
            payload.token,
            ip_address=ip_address,
            email=email,
            remember_device=payload.remember_device,
            out_of_band=out_of_band,
            request_id=request_id,
        )

    def _check_limits(
        self, user_id: str, hashed_ip: str | None
    ) -> RateLimitRejection | None:
        user_policy = self.policy.user_rate_limit
        decision = self.rate_limiter.check_and_consume(
            user_rate_limit_key(user_id),
            user_policy.max_hits,
            user_policy.window_seconds,
        )
        if not decision.allowed:
            return RateLimitRejection(
                scope=USER_SCOPE, retry_at=decision.retry_at, hashed_ip=hashed_ip
            )

        if hashed_ip is None:
            return None

        ip_policy = self.policy.ip_rate_limit
        decision = self.rate_limiter.check_and_consume(
            ip_rate_limit_key(hashed_ip),
            ip_policy.max_hits,
            ip_policy.window_seconds,
        )
        if not decision.allowed:
            return RateLimitRejection(
                scope=IP_SCOPE, retry_at=decision.retry_at, hashed_ip=hashed_ip
            )
        return None


__all__: list[str] = [
    "hash_ip_address",
    "user_rate_limit_key",
    "ip_rate_limit_key",
    "RateLimitRejection",
    "MfaFlowResult",
    "MfaVerificationFlow",
]
