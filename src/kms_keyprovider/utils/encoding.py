"""Base64 helpers matching the JSON encoding of Go ``[]byte`` values."""
from __future__ import annotations

import base64
import binascii
from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator


def b64e(data: bytes) -> str:
    """Standard base64 encode with padding"""
    return base64.b64encode(data).decode("ascii")


def b64d(value: str) -> bytes:
    """Strict standard base64 decode; raises ``ValueError`` on bad input"""
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64 data: {exc}") from None


def _coerce_bytes(value: Any) -> bytes:
    # Go marshals a nil slice as null.
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return b64d(value)
    raise ValueError("expected a base64 encoded string")


Base64Bytes = Annotated[
    bytes,
    PlainValidator(_coerce_bytes),
    PlainSerializer(b64e, return_type=str, when_used="json"),
]


__all__ = ["Base64Bytes", "b64d", "b64e"]
