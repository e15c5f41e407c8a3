"""Email/WhatsApp one-time codes.

Generating and delivering the code is the application's job (mail provider,
Twilio WhatsApp). This module only derives the digest the delivery side stores
and the verifier compares against.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from ..types import Factor, OutOfBandChallenge

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config import MfaPolicy

_NON_DIGITS = re.compile(r"[^0-9]")


def hash_out_of_band_code(code: str, pepper: str) -> str:
    """Hex SHA-256 of ``pepper + code``."""
    return hashlib.sha256(f"{pepper}{code}".encode()).hexdigest()


def matches_challenge(
    challenge: OutOfBandChallenge,
    token: str,
    *,
    pepper: str,
    now: datetime,
) -> bool:
    """Check a submitted code against a challenge.

    Returns:
        False when the challenge has expired or the digest differs.
    """
    if now >= challenge.expires_at:
        return False
    digits = _NON_DIGITS.sub("", token)
    if not digits:
        return False
    return hmac.compare_digest(
        hash_out_of_band_code(digits, pepper), challenge.code_digest.lower()
    )


class OutOfBandCodeIssuer:
    """Generates numeric codes and matching challenges, without sending them.

    Example:
        ```python
        issuer = OutOfBandCodeIssuer(pepper=pepper)
        code, challenge = issuer.issue(Factor.WHATSAPP)
        await whatsapp.send(msisdn, f"Your SACCO+ security code is {code}.")
        await otp_issues.insert(user_id, challenge)
        ```
    """

    def __init__(
        self,
        *,
        pepper: str,
        code_length: int = 6,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the issuer.

        Args:
            pepper: Secret mixed into every digest.
            code_length: Number of digits.
            ttl_seconds: Code lifetime (default 10 minutes).
            clock: Returns the current time in epoch seconds.
        """
        self.pepper = pepper
        self.code_length = code_length
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    @classmethod
    def from_policy(
        cls,
        policy: MfaPolicy,
        *,
        pepper: str,
        clock: Callable[[], float] = time.time,
    ) -> OutOfBandCodeIssuer:
        """Build an issuer whose codes live for ``policy.out_of_band_ttl_seconds``."""
        return cls(pepper=pepper, ttl_seconds=policy.out_of_band_ttl_seconds, clock=clock)

    def _generate_code(self) -> str:
        code = secrets.randbelow(10**self.code_length)
        return str(code).zfill(self.code_length)

    def issue(self, channel: Factor) -> tuple[str, OutOfBandChallenge]:
        """Generate a code for ``channel``.

        Returns:
            The plaintext code (to deliver, never to log) and its challenge.
        """
        code = self._generate_code()
        issued_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        challenge = OutOfBandChallenge(
            channel=Factor.parse(channel),
            code_digest=hash_out_of_band_code(code, self.pepper),
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds),
        )
        return code, challenge


__all__: list[str] = [
    "hash_out_of_band_code",
    "matches_challenge",
    "OutOfBandCodeIssuer",
]
