"""Package version helper."""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kms-keyprovider")
except PackageNotFoundError:  # pragma: no cover - happens only from source checkout
    __version__ = "0.0.0-dev"

__all__ = ["__version__"]
