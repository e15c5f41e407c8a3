"""Backup codes for MFA recovery.

Backup codes are single-use: the verifier removes the matching hash from the
user's list, and that removal is the replay defense. Codes are stored only as
peppered, salted hashes.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import MfaPolicy
    from ..ports import IBackupCodeHasher


def normalize_backup_code(code: str) -> str:
    """Normalize user input: trim, upper-case, drop dashes and spaces."""
    return code.strip().upper().replace("-", "").replace(" ", "")


class Pbkdf2BackupCodeHasher:
    """PBKDF2-HMAC-SHA256 hasher with a server-side pepper.

    Stored format is ``<salt>$<hash>`` with both parts base64-encoded, which is
    the format existing SACCO user records already hold.

    Example:
        ```python
        hasher = Pbkdf2BackupCodeHasher(pepper=settings.backup_pepper)
        stored = hasher.hash("K7QX9MPA")
        assert hasher.verify("K7QX9MPA", stored)
        ```
    """

    def __init__(
        self,
        *,
        pepper: str,
        iterations: int = 250_000,
        salt_bytes: int = 16,
    ) -> None:
        """Initialize the hasher.

        Args:
            pepper: Secret prepended to every code before hashing.
            iterations: PBKDF2 iteration count.
            salt_bytes: Random salt length.
        """
        self.pepper = pepper
        self.iterations = iterations
        self.salt_bytes = salt_bytes

    def _derive(self, code: str, salt: str) -> str:
        digest = hashlib.pbkdf2_hmac(
            "sha256",
            f"{self.pepper}{code}".encode(),
            salt.encode(),
            self.iterations,
            dklen=32,
        )
        return base64.b64encode(digest).decode()

    def hash(self, code: str) -> str:
        salt = base64.b64encode(secrets.token_bytes(self.salt_bytes)).decode()
        return f"{salt}${self._derive(code, salt)}"

    def verify(self, code: str, stored_hash: str) -> bool:
        salt, sep, expected = stored_hash.partition("$")
        if not sep or not expected:
            return False
        return hmac.compare_digest(self._derive(code, salt), expected)


class BcryptBackupCodeHasher:
    """bcrypt hasher with a server-side pepper."""

    def __init__(self, *, pepper: str = "", rounds: int = 12) -> None:
        """Initialize the hasher.

        Args:
            pepper: Secret prepended to every code before hashing.
            rounds: bcrypt cost factor (default 12).
        """
        self.pepper = pepper
        self.rounds = rounds
        self._bcrypt: Any = None

    def _get_bcrypt(self) -> Any:
        """Lazy import bcrypt."""
        if self._bcrypt is None:
            try:
                import bcrypt

                self._bcrypt = bcrypt
            except ImportError as e:
                raise ImportError(
                    "bcrypt is required for BcryptBackupCodeHasher. "
                    "Install with: pip install bcrypt"
                ) from e
        return self._bcrypt

    def hash(self, code: str) -> str:
        bcrypt_module = self._get_bcrypt()
        salt = bcrypt_module.gensalt(rounds=self.rounds)
        return bcrypt_module.hashpw(f"{self.pepper}{code}".encode(), salt).decode()  # type: ignore[no-any-return]

    def verify(self, code: str, stored_hash: str) -> bool:
        bcrypt_module = self._get_bcrypt()
        try:
            return bool(
                bcrypt_module.checkpw(
                    f"{self.pepper}{code}".encode(), stored_hash.encode()
                )
            )
        except ValueError:
            # Not a bcrypt hash
            return False


@dataclass(frozen=True)
class IssuedBackupCode:
    """A freshly generated backup code.

    Attributes:
        code: Display form, shown to the user once (e.g. ``"K7QX-9MPA"``).
        hash: Value to persist in ``MfaState.backup_code_hashes``.
    """

    code: str
    hash: str


class BackupCodeIssuer:
    """Generates backup codes and their hashes.

    Example:
        ```python
        issuer = BackupCodeIssuer(hasher=Pbkdf2BackupCodeHasher(pepper=pepper))
        issued = issuer.generate(10)
        show_once([c.code for c in issued])
        await store.save(user_id, replace(state, backup_code_hashes=tuple(c.hash for c in issued)))
        ```
    """

    # Characters used in backup codes (exclude ambiguous: 0, O, 1, I)
    ALPHABET = string.ascii_uppercase.replace("O", "").replace(
        "I", ""
    ) + string.digits.replace("0", "").replace("1", "")

    def __init__(
        self,
        *,
        hasher: IBackupCodeHasher,
        code_length: int = 8,
        default_count: int = 10,
    ) -> None:
        """Initialize the issuer.

        Args:
            hasher: One-way function shared with the verifier.
            code_length: Length of each code without separators.
            default_count: Codes generated when no count is given.
        """
        self.hasher = hasher
        self.code_length = code_length
        self.default_count = default_count

    @classmethod
    def from_policy(
        cls, policy: MfaPolicy, *, hasher: IBackupCodeHasher
    ) -> BackupCodeIssuer:
        """Build an issuer producing ``policy.backup_code_count`` codes per batch."""
        return cls(hasher=hasher, default_count=policy.backup_code_count)

    def _generate_code(self) -> str:
        return "".join(secrets.choice(self.ALPHABET) for _ in range(self.code_length))

    def _format_code(self, code: str) -> str:
        """Format code with dashes for readability (e.g. ``"ABCD-EFGH"``)."""
        return "-".join(code[i : i + 4] for i in range(0, len(code), 4))

    def generate(self, count: int | None = None) -> list[IssuedBackupCode]:
        """Generate a batch of backup codes.

        Args:
            count: Number of codes (default ``default_count``).

        Returns:
            Issued codes in display form with their hashes.
        """
        issued: list[IssuedBackupCode] = []
        for _ in range(count or self.default_count):
            raw = self._generate_code()
            issued.append(
                IssuedBackupCode(
                    code=self._format_code(raw),
                    hash=self.hasher.hash(normalize_backup_code(raw)),
                )
            )
        return issued


def consume_backup_code(
    hasher: IBackupCodeHasher,
    code: str,
    hashes: tuple[str, ...],
) -> tuple[str, ...] | None:
    """Find ``code`` among ``hashes``.

    Args:
        hasher: One-way function used when the codes were issued.
        code: Submitted code, any format.
        hashes: Stored hashes in issue order.

    Returns:
        The hashes with the matching one removed, or None when nothing matches.
    """
    normalized = normalize_backup_code(code)
    if not normalized:
        return None
    for index, stored in enumerate(hashes):
        if hasher.verify(normalized, stored):
            return hashes[:index] + hashes[index + 1 :]
    return None


__all__: list[str] = [
    "normalize_backup_code",
    "Pbkdf2BackupCodeHasher",
    "BcryptBackupCodeHasher",
    "IssuedBackupCode",
    "BackupCodeIssuer",
    "consume_backup_code",
]
