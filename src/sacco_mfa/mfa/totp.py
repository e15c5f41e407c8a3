"""TOTP (Time-based One-Time Password) primitives.

Works with any RFC 6238 authenticator app (Google Authenticator, Microsoft
Authenticator, Authy, 1Password). Uses pyotp for code derivation; step
selection, monotonicity and replay checks live in the verifier.
"""

from __future__ import annotations

import re

import pyotp

from ..config import TotpConfig
from ..exceptions import SecretDecryptionError

_NON_DIGITS = re.compile(r"[^0-9]")


class TotpCodec:
    """Derives TOTP codes per time step.

    Example:
        ```python
        codec = TotpCodec(TotpConfig(interval=30, valid_window=1))
        step = codec.step_at(time.time())
        code = codec.code_at_step(secret, step)
        ```
    """

    def __init__(self, config: TotpConfig | None = None) -> None:
        """Initialize the codec.

        Args:
            config: TOTP parameters (default 6 digits, 30 s, ±1 step).
        """
        self.config = config or TotpConfig()

    @property
    def digits(self) -> int:
        return self.config.digits

    @property
    def interval(self) -> int:
        return self.config.interval

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            secret,
            digits=self.config.digits,
            interval=self.config.interval,
            issuer=self.config.issuer,
        )

    def step_at(self, timestamp: float) -> int:
        """Return the time step containing ``timestamp`` (epoch seconds)."""
        return int(timestamp // self.config.interval)

    def candidate_steps(self, timestamp: float) -> list[int]:
        """Steps tolerated at ``timestamp``, most recent first.

        Covers ``±valid_window`` steps around the current one; negative steps
        are skipped.
        """
        current = self.step_at(timestamp)
        window = self.config.valid_window
        return [
            step
            for step in range(current + window, current - window - 1, -1)
            if step >= 0
        ]

    def check_secret(self, secret: str) -> None:
        """Raise SecretDecryptionError unless ``secret`` is valid Base32."""
        try:
            self._totp(secret).byte_secret()
        except ValueError as e:
            raise SecretDecryptionError("TOTP secret is not valid Base32") from e

    def code_at_step(self, secret: str, step: int) -> str:
        """Derive the code for a given step."""
        return str(self._totp(secret).generate_otp(step))

    def sanitize(self, token: str) -> str | None:
        """Strip separators from a submitted code.

        Returns:
            The digits, or None when the digit count is wrong.
        """
        digits = _NON_DIGITS.sub("", token)
        if len(digits) != self.config.digits:
            return None
        return digits

    def generate_secret(self) -> str:
        """Generate a new Base32 secret (160 bits)."""
        return pyotp.random_base32(length=32)

    def provisioning_uri(self, secret: str, account_name: str) -> str:
        """Build the ``otpauth://`` URI shown as a QR code at enrollment."""
        return self._totp(secret).provisioning_uri(
            name=account_name,
            issuer_name=self.config.issuer,
        )

    @staticmethod
    def format_manual_key(secret: str) -> str:
        """Format a secret for manual entry (groups of 4)."""
        secret = secret.rstrip("=")
        return " ".join(secret[i : i + 4] for i in range(0, len(secret), 4))


__all__: list[str] = ["TotpCodec"]
