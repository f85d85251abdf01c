"""Offline AES-GCM keyring backend.

Keys are derived per key name from a caller-supplied 32 byte master secret, so
nothing has to be stored by the provider. Intended for development and CI
where no cloud KMS is reachable.
"""
from __future__ import annotations

import os
from typing import Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import BackendError, ConfigurationError
from ..utils.encoding import b64d
from .base import KMSBackend

MASTER_KEY_ENV: Final[str] = "KMS_KEYPROVIDER_LOCAL_KEY"
MASTER_KEY_BYTES: Final[int] = 32
NONCE_BYTES: Final[int] = 12
_HKDF_INFO_PREFIX: Final[bytes] = b"kms-keyprovider/local/"


class LocalKeyringBackend(KMSBackend):
    name = "local"

    def __init__(self, master_key: bytes) -> None:
        if len(master_key) != MASTER_KEY_BYTES:
            raise ConfigurationError(f"Local master key must be {MASTER_KEY_BYTES} bytes")
        self._master_key = master_key

    @classmethod
    def from_env(cls, variable: str = MASTER_KEY_ENV) -> "LocalKeyringBackend":
        encoded = os.getenv(variable)
        if not encoded:
            raise ConfigurationError(f"{variable} must hold a base64 encoded {MASTER_KEY_BYTES} byte key")
        try:
            master_key = b64d(encoded.strip())
        except ValueError as exc:
            raise ConfigurationError(f"{variable} is not valid base64") from exc
        return cls(master_key)

    def encrypt(
        self,
        key_name: str,
        plaintext: bytes,
        *,
        aad: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        nonce = os.urandom(NONCE_BYTES)
        return nonce + AESGCM(self._derive(key_name)).encrypt(nonce, plaintext, aad)

    def decrypt(
        self,
        key_name: str,
        ciphertext: bytes,
        *,
        aad: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        if len(ciphertext) <= NONCE_BYTES:
            raise BackendError(f"ciphertext for {key_name} is too short")
        nonce, body = ciphertext[:NONCE_BYTES], ciphertext[NONCE_BYTES:]
        try:
            return AESGCM(self._derive(key_name)).decrypt(nonce, body, aad)
        except InvalidTag:
            raise BackendError(f"ciphertext authentication failed for {key_name}") from None

    def _derive(self, key_name: str) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=_HKDF_INFO_PREFIX + key_name.encode("utf-8"),
        )
        return hkdf.derive(self._master_key)


__all__ = ["LocalKeyringBackend", "MASTER_KEY_ENV"]
