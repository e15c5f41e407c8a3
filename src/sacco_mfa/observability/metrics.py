"""MFA metrics helpers for Prometheus integration.

Usage:
    ```python
    from sacco_mfa.observability import MfaMetrics

    metrics = MfaMetrics()
    with metrics.timed(Factor.TOTP):
        outcome = verifier.verify(request)
    metrics.record_outcome(outcome)
    ```

Recording never raises: a broken collector must not turn a verification into
an error.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, Counter, Histogram

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Generator

    from prometheus_client import CollectorRegistry

    from ..types import Factor, VerificationOutcome


class _MfaMetricsRegistry:
    """Registry for MFA Prometheus metrics.

    Lazily creates the collectors on first use.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else REGISTRY
        self._verifications: Any = None
        self._rate_limited: Any = None
        self._duration: Any = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        self._verifications = Counter(
            "mfa_verifications_total",
            "MFA verification attempts",
            ["factor", "result", "reason"],
            registry=self._registry,
        )
        self._rate_limited = Counter(
            "mfa_rate_limited_total",
            "MFA attempts rejected by the rate limiter",
            ["scope"],
            registry=self._registry,
        )
        self._duration = Histogram(
            "mfa_verify_duration_seconds",
            "MFA factor verification duration",
            ["factor"],
            registry=self._registry,
        )
        self._initialized = True

    @property
    def verifications(self) -> Any:
        self._ensure_initialized()
        return self._verifications

    @property
    def rate_limited(self) -> Any:
        self._ensure_initialized()
        return self._rate_limited

    @property
    def duration(self) -> Any:
        self._ensure_initialized()
        return self._duration


# Global registry instance
_registry = _MfaMetricsRegistry()


class MfaMetrics:
    """Records MFA verification metrics.

    Instances without an explicit ``registry`` share the process-wide
    collectors registered on the default Prometheus registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize the helper.

        Args:
            registry: Prometheus registry for isolated collectors (tests,
                multiple apps in one process).
        """
        self._metrics = _registry if registry is None else _MfaMetricsRegistry(registry)

    def record_outcome(self, outcome: VerificationOutcome) -> None:
        """Count one verification outcome."""
        try:
            self._metrics.verifications.labels(
                factor=outcome.factor.value,
                result="success" if outcome.ok else "failure",
                reason=outcome.failure_reason.value if outcome.failure_reason else "",
            ).inc()
        except Exception:
            _logger.debug("Failed to record verification metric")

    def record_rate_limited(self, scope: str) -> None:
        """Count one rate-limit rejection (``scope`` is ``user`` or ``ip``)."""
        try:
            self._metrics.rate_limited.labels(scope=scope).inc()
        except Exception:
            _logger.debug("Failed to record rate-limit metric")

    @contextmanager
    def timed(self, factor: Factor) -> Generator[None, None, None]:
        """Context manager timing a factor verification.

        Args:
            factor: Factor being verified.

        Yields:
            Nothing.
        """
        start = time.monotonic()
        try:
            yield
        finally:
            duration = time.monotonic() - start
            try:
                self._metrics.duration.labels(factor=factor.value).observe(duration)
            except Exception:
                _logger.debug("Failed to record duration histogram")


__all__: list[str] = ["MfaMetrics"]
