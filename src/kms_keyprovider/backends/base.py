from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class KMSBackend(ABC):
    """Interface for external key managers that wrap layer keys.

    Implementations must be safe to call from several threads at once since
    the gRPC transport serves requests concurrently.
    """

    name: str = "abstract"

    @abstractmethod
    def encrypt(
        self,
        key_name: str,
        plaintext: bytes,
        *,
        aad: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        """Encrypt ``plaintext`` under the backend-native key ``key_name``"""

    @abstractmethod
    def decrypt(
        self,
        key_name: str,
        ciphertext: bytes,
        *,
        aad: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        """Decrypt ``ciphertext`` produced by :meth:`encrypt` for ``key_name``"""

    def close(self) -> None:
        return None

    def __enter__(self) -> "KMSBackend":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


__all__ = ["KMSBackend"]
