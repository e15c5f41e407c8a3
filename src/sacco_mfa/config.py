"""Policy configuration for MFA verification.

All values are caller-supplied; nothing here reads the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import InvalidPolicyError


@dataclass(frozen=True)
class RateLimitPolicy:
    """Fixed-window rate-limit policy.

    Attributes:
        max_hits: Attempts allowed per window.
        window_seconds: Window length in seconds.
    """

    max_hits: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.max_hits <= 0:
            raise InvalidPolicyError(f"max_hits must be positive, got {self.max_hits}")
        if self.window_seconds <= 0:
            raise InvalidPolicyError(
                f"window_seconds must be positive, got {self.window_seconds}"
            )


@dataclass(frozen=True)
class TotpConfig:
    """TOTP configuration.

    Attributes:
        digits: Number of digits in a code.
        interval: Step duration in seconds.
        valid_window: Steps accepted either side of the current one.
        issuer: Issuer name shown in authenticator apps.
    """

    digits: int = 6
    interval: int = 30
    valid_window: int = 1
    issuer: str = "SACCO+"


@dataclass(frozen=True)
class MfaPolicy:
    """Aggregate MFA policy.

    Attributes:
        totp: TOTP parameters.
        replay_ttl_seconds: Lifetime of a consumed TOTP step in the replay guard.
        user_rate_limit: Per-user verification attempts.
        ip_rate_limit: Per-hashed-IP verification attempts.
        backup_code_count: Number of backup codes issued per batch.
        out_of_band_ttl_seconds: Lifetime of an email/WhatsApp code.
    """

    totp: TotpConfig = field(default_factory=TotpConfig)
    replay_ttl_seconds: float = 90
    user_rate_limit: RateLimitPolicy = field(
        default_factory=lambda: RateLimitPolicy(max_hits=5, window_seconds=300)
    )
    ip_rate_limit: RateLimitPolicy = field(
        default_factory=lambda: RateLimitPolicy(max_hits=10, window_seconds=300)
    )
    backup_code_count: int = 10
    out_of_band_ttl_seconds: int = 600  # 10 minutes

    def __post_init__(self) -> None:
        if self.replay_ttl_seconds <= 0:
            raise InvalidPolicyError(
                f"replay_ttl_seconds must be positive, got {self.replay_ttl_seconds}"
            )


__all__: list[str] = ["RateLimitPolicy", "TotpConfig", "MfaPolicy"]
