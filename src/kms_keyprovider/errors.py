from __future__ import annotations

"""Central exception hierarchy"""


class KeyProviderError(Exception):
    """Base exception for all key-provider failures"""


class ConfigurationError(KeyProviderError):
    """Raised when the provider cannot be set up from its configuration"""


class ProtocolError(KeyProviderError):
    """Raised when a key-provider protocol payload cannot be parsed"""


class MissingProviderParameter(KeyProviderError):
    """Raised when the request carries no key identifier for this provider"""

    def __init__(self, provider_name: str) -> None:
        super().__init__(
            f"provider must be formatted as provider:{provider_name}:gcpkms://projects/$PROJECT_ID"
            "/locations/global/keyRings/[keyring]/cryptoKeys/[key]/cryptoKeyVersions/1"
        )
        self.provider_name = provider_name


class UnsupportedKeySchema(KeyProviderError):
    """Raised when a key identifier does not use a recognized KMS scheme"""


class KeyIdentifierMismatch(KeyProviderError):
    """Raised when the requested key differs from the one recorded at wrap time"""

    def __init__(self, requested: str, recorded: str) -> None:
        super().__init__(
            f"kms uri parameter and key url in annotation are different: parameter [{requested}], key url [{recorded}]"
        )
        self.requested = requested
        self.recorded = recorded


class MalformedAnnotation(KeyProviderError):
    """Raised when a wrapped-key annotation is missing or corrupted"""


class BackendError(KeyProviderError):
    """Raised when the KMS backend rejects or fails an operation"""


__all__ = [
    "KeyProviderError",
    "ConfigurationError",
    "ProtocolError",
    "MissingProviderParameter",
    "UnsupportedKeySchema",
    "KeyIdentifierMismatch",
    "MalformedAnnotation",
    "BackendError",
]
