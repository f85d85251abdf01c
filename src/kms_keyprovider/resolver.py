"""Key identifier resolution from provider parameters."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Mapping, Sequence

from .errors import MissingProviderParameter, UnsupportedKeySchema
from .models import OverridePolicy

GCP_KMS_SCHEME: Final[str] = "gcpkms://"
DEFAULT_PROVIDER_NAME: Final[str] = "kmscrypt"


@dataclass(frozen=True, slots=True)
class ResolvedKeyIdentifier:
    """A KMS key URI together with the backend-native key name it names."""

    uri: str
    native_name: str

    @classmethod
    def parse(cls, uri: str) -> "ResolvedKeyIdentifier":
        if not uri.startswith(GCP_KMS_SCHEME):
            raise UnsupportedKeySchema(f"unsupported kms prefix {uri}")
        native_name = uri[len(GCP_KMS_SCHEME):]
        if not native_name:
            raise UnsupportedKeySchema(f"kms uri {uri} does not name a key")
        return cls(uri=uri, native_name=native_name)


class ParameterResolver:
    """Pick the KMS key URI governing a request.

    ``override`` is a deployment-pinned key URI. With
    :attr:`OverridePolicy.OVERRIDE_WINS` it replaces whatever the request
    carries for ``provider_name``; with :attr:`OverridePolicy.REQUEST_WINS`
    it is only used when the request carries nothing for it.
    """

    def __init__(
        self,
        provider_name: str = DEFAULT_PROVIDER_NAME,
        *,
        override: str | None = None,
        policy: OverridePolicy = OverridePolicy.OVERRIDE_WINS,
    ) -> None:
        if not provider_name:
            raise ValueError("provider_name must be non-empty")
        self.provider_name = provider_name
        self.override = override or None
        self.policy = OverridePolicy(policy)

    def select(self, parameters: Mapping[str, Sequence[bytes]] | None) -> str:
        """Return the raw key URI after applying the override policy."""

        values = (parameters or {}).get(self.provider_name)
        if self.override is not None:
            if self.policy is OverridePolicy.OVERRIDE_WINS or not values:
                return self.override
        if not values:
            raise MissingProviderParameter(self.provider_name)
        first = values[0]
        try:
            return bytes(first).decode("utf-8")
        except UnicodeDecodeError:
            raise UnsupportedKeySchema(
                f"key identifier for provider {self.provider_name} is not valid UTF-8"
            ) from None

    def resolve(self, parameters: Mapping[str, Sequence[bytes]] | None) -> ResolvedKeyIdentifier:
        return ResolvedKeyIdentifier.parse(self.select(parameters))


__all__ = [
    "DEFAULT_PROVIDER_NAME",
    "GCP_KMS_SCHEME",
    "ParameterResolver",
    "ResolvedKeyIdentifier",
]
