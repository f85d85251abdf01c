from __future__ import annotations

from typing import Optional

import pytest

from kms_keyprovider.backends.base import KMSBackend
from kms_keyprovider.operations import KeyProvider
from kms_keyprovider.resolver import ParameterResolver

KEY_URI = "gcpkms://projects/demo/locations/global/keyRings/r1/cryptoKeys/k1/cryptoKeyVersions/1"
NATIVE_NAME = "projects/demo/locations/global/keyRings/r1/cryptoKeys/k1/cryptoKeyVersions/1"
PROVIDER = "kmscrypt"


class ReversingBackend(KMSBackend):
    """Backend stub whose ciphertext is the reversed plaintext."""

    name = "reversing"

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, bytes, Optional[float]]] = []

    def encrypt(self, key_name, plaintext, *, aad=None, timeout=None):
        self.calls.append(("encrypt", key_name, plaintext, timeout))
        return plaintext[::-1]

    def decrypt(self, key_name, ciphertext, *, aad=None, timeout=None):
        self.calls.append(("decrypt", key_name, ciphertext, timeout))
        return ciphertext[::-1]


class FailingBackend(KMSBackend):
    name = "failing"

    def encrypt(self, key_name, plaintext, *, aad=None, timeout=None):
        raise RuntimeError("permission denied on key")

    def decrypt(self, key_name, ciphertext, *, aad=None, timeout=None):
        raise RuntimeError("permission denied on key")


@pytest.fixture
def backend() -> ReversingBackend:
    return ReversingBackend()


@pytest.fixture
def resolver() -> ParameterResolver:
    return ParameterResolver(PROVIDER)


@pytest.fixture
def provider(backend: ReversingBackend, resolver: ParameterResolver) -> KeyProvider:
    return KeyProvider(backend, resolver)


def params(uri: str = KEY_URI) -> dict[str, tuple[bytes, ...]]:
    return {PROVIDER: (uri.encode("utf-8"),)}
