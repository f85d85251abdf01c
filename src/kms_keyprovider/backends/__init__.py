"""KMS backends and the factory selecting one from configuration."""
from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any, Dict, Tuple

from ..errors import ConfigurationError
from .base import KMSBackend

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from ..config import KMSConfig

# Backends are imported lazily so the Google client libraries are only loaded
# when Cloud KMS is actually selected.
_REGISTRY: Dict[str, Tuple[str, str]] = {
    "gcpkms": ("kms_keyprovider.backends.gcp", "GoogleCloudKMSBackend"),
    "local": ("kms_keyprovider.backends.local", "LocalKeyringBackend"),
}

BACKEND_NAMES = tuple(_REGISTRY)


def load_backend_class(name: str) -> Any:
    try:
        module_path, class_name = _REGISTRY[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown KMS backend {name!r}; expected one of {', '.join(BACKEND_NAMES)}"
        ) from None
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def create_backend(config: "KMSConfig") -> KMSBackend:
    backend_cls = load_backend_class(config.backend)
    if config.backend == "local":
        return backend_cls.from_env(config.local_key_env)
    return backend_cls(credentials_file=config.credentials_file)


__all__ = ["BACKEND_NAMES", "KMSBackend", "create_backend", "load_backend_class"]
