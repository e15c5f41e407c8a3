"""Factor primitives.

Supports:
- TOTP (Google Authenticator, Microsoft Authenticator, Authy, etc.)
- Backup codes (single-use recovery codes)
- Email/WhatsApp OTP digests (delivery is the application's job)
- Passkey assertion payload parsing
- Encryption at rest for TOTP secrets
"""

from .backup_codes import (
    BackupCodeIssuer,
    BcryptBackupCodeHasher,
    IssuedBackupCode,
    Pbkdf2BackupCodeHasher,
    consume_backup_code,
    normalize_backup_code,
)
from .out_of_band import (
    OutOfBandCodeIssuer,
    hash_out_of_band_code,
    matches_challenge,
)
from .passkey import parse_assertion_payload
from .secret_box import AesGcmSecretBox
from .totp import TotpCodec

__all__: list[str] = [
    # TOTP
    "TotpCodec",
    # Backup codes
    "BackupCodeIssuer",
    "BcryptBackupCodeHasher",
    "IssuedBackupCode",
    "Pbkdf2BackupCodeHasher",
    "consume_backup_code",
    "normalize_backup_code",
    # Email/WhatsApp OTP
    "OutOfBandCodeIssuer",
    "hash_out_of_band_code",
    "matches_challenge",
    # Passkey
    "parse_assertion_payload",
    # Secrets at rest
    "AesGcmSecretBox",
]
