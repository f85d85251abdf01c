"""gRPC transport for the key-provider."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = ["KeyProviderServer", "status_for"]


def __getattr__(name: str) -> Any:  # pragma: no cover - thin wrapper
    if name in {"KeyProviderServer", "status_for"}:
        from .server import KeyProviderServer, status_for

        globals().update({"KeyProviderServer": KeyProviderServer, "status_for": status_for})
        return globals()[name]
    raise AttributeError(name)


if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .server import KeyProviderServer, status_for  # noqa: F401
