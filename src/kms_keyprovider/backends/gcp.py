"""Google Cloud KMS backend."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import google.auth
import structlog
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import kms_v1

from ..errors import BackendError, ConfigurationError
from .base import KMSBackend

_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

logger = structlog.get_logger(__name__)


def create_client(credentials_file: Optional[Path] = None) -> kms_v1.KeyManagementServiceClient:
    """Build a KMS client from an ADC file or the ambient default credentials."""

    try:
        if credentials_file is not None:
            credentials, _project = google.auth.load_credentials_from_file(
                str(credentials_file), scopes=_SCOPES
            )
            return kms_v1.KeyManagementServiceClient(credentials=credentials)
        return kms_v1.KeyManagementServiceClient()
    except auth_exceptions.GoogleAuthError as exc:
        raise ConfigurationError(f"Error initializing KMS client: {exc}") from exc


class GoogleCloudKMSBackend(KMSBackend):
    """Symmetric Encrypt/Decrypt against Cloud KMS crypto keys.

    ``key_name`` is the full resource name, e.g.
    ``projects/p/locations/global/keyRings/r/cryptoKeys/k/cryptoKeyVersions/1``.
    """

    name = "gcpkms"

    def __init__(
        self,
        client: Any | None = None,
        *,
        credentials_file: Optional[Path] = None,
    ) -> None:
        self._client = client if client is not None else create_client(credentials_file)

    def encrypt(
        self,
        key_name: str,
        plaintext: bytes,
        *,
        aad: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        request: Dict[str, Any] = {"name": key_name, "plaintext": plaintext}
        if aad:
            request["additional_authenticated_data"] = aad
        response = self._call("encrypt", key_name, request, timeout)
        return bytes(response.ciphertext)

    def decrypt(
        self,
        key_name: str,
        ciphertext: bytes,
        *,
        aad: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        request: Dict[str, Any] = {"name": _crypto_key_name(key_name), "ciphertext": ciphertext}
        if aad:
            request["additional_authenticated_data"] = aad
        response = self._call("decrypt", key_name, request, timeout)
        return bytes(response.plaintext)

    def close(self) -> None:
        transport = getattr(self._client, "transport", None)
        if transport is not None:
            transport.close()

    def _call(self, method: str, key_name: str, request: Dict[str, Any], timeout: Optional[float]) -> Any:
        kwargs: Dict[str, Any] = {"request": request}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            return getattr(self._client, method)(**kwargs)
        except api_exceptions.GoogleAPIError as exc:
            logger.warning("kms.gcp.error", method=method, key=key_name, error=type(exc).__name__)
            raise BackendError(f"Cloud KMS {method} failed for {key_name}: {exc}") from exc


def _crypto_key_name(key_name: str) -> str:
    # Decrypt addresses the crypto key; KMS picks the version from the ciphertext.
    marker = "/cryptoKeyVersions/"
    if marker in key_name:
        return key_name.split(marker, 1)[0]
    return key_name


__all__ = ["GoogleCloudKMSBackend", "create_client"]
