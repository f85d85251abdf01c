"""Utility exports."""
from .encoding import Base64Bytes, b64d, b64e
from .validation import normalize_listen_address, resolve_and_check_path

__all__ = [
    "Base64Bytes",
    "b64d",
    "b64e",
    "normalize_listen_address",
    "resolve_and_check_path",
]
