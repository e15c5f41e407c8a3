"""Encryption at rest for TOTP secrets.

AES-256-GCM with a 12-byte IV. The stored blob is ``iv | tag | ciphertext``
base64-encoded, the layout already present in SACCO user records. Values read
back from a Postgres ``bytea`` column arrive as ``\\x``-prefixed hex and are
accepted as well.
"""

from __future__ import annotations

import base64
import binascii
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import SecretDecryptionError

_IV_BYTES = 12
_TAG_BYTES = 16
_KEY_BYTES = 32


class AesGcmSecretBox:
    """Encrypts and decrypts short secrets with a data key.

    Pass ``box.decrypt`` as the verifier's ``secret_decoder`` when
    ``MfaState.totp_secret`` holds the encrypted form.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != _KEY_BYTES:
            raise ValueError(f"AES-256-GCM needs a {_KEY_BYTES}-byte key, got {len(key)}")
        self._aead = AESGCM(key)

    @classmethod
    def from_base64_key(cls, encoded: str) -> AesGcmSecretBox:
        """Build a box from a base64-encoded data key."""
        return cls(base64.b64decode(encoded))

    def encrypt(self, value: str) -> str:
        iv = secrets.token_bytes(_IV_BYTES)
        sealed = self._aead.encrypt(iv, value.encode("utf-8"), None)
        ciphertext, tag = sealed[:-_TAG_BYTES], sealed[-_TAG_BYTES:]
        return base64.b64encode(iv + tag + ciphertext).decode()

    def decrypt(self, payload: str | bytes) -> str:
        """Decrypt a stored secret.

        Raises:
            SecretDecryptionError: If the payload is malformed or was sealed
                with another key.
        """
        blob = self._normalize(payload)
        if len(blob) <= _IV_BYTES + _TAG_BYTES:
            raise SecretDecryptionError("Encrypted payload is too short")

        iv = blob[:_IV_BYTES]
        tag = blob[_IV_BYTES : _IV_BYTES + _TAG_BYTES]
        ciphertext = blob[_IV_BYTES + _TAG_BYTES :]
        try:
            return self._aead.decrypt(iv, ciphertext + tag, None).decode("utf-8")
        except InvalidTag as e:
            raise SecretDecryptionError("Encrypted payload failed authentication") from e

    @staticmethod
    def _normalize(payload: str | bytes) -> bytes:
        if isinstance(payload, bytes):
            return payload
        try:
            if payload.startswith("\\x"):
                return bytes.fromhex(payload[2:])
            return base64.b64decode(payload, validate=True)
        except (ValueError, binascii.Error) as e:
            raise SecretDecryptionError("Encrypted payload is not base64 or hex") from e


__all__: list[str] = ["AesGcmSecretBox"]
