"""Annotation packet carried alongside a wrapped layer key."""
from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import MalformedAnnotation
from .utils.encoding import Base64Bytes

WRAP_TYPE: Final[str] = "AES"


class AnnotationPacket(BaseModel):
    key_url: str
    wrapped_key: Base64Bytes
    wrap_type: str = WRAP_TYPE

    model_config = ConfigDict(frozen=True)

    @field_validator("key_url")
    @classmethod
    def _validate_key_url(cls, value: str) -> str:
        if not value:
            raise ValueError("key_url must be non-empty")
        return value

    @field_validator("wrapped_key")
    @classmethod
    def _validate_wrapped_key(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("wrapped_key must be non-empty")
        return value

    @field_validator("wrap_type")
    @classmethod
    def _validate_wrap_type(cls, value: str) -> str:
        if value != WRAP_TYPE:
            raise ValueError(f"unsupported wrap type {value!r}")
        return value


def encode_annotation(key_url: str, wrapped_key: bytes) -> bytes:
    packet = AnnotationPacket(key_url=key_url, wrapped_key=wrapped_key, wrap_type=WRAP_TYPE)
    return packet.model_dump_json().encode("utf-8")


def decode_annotation(blob: bytes) -> AnnotationPacket:
    if not blob:
        raise MalformedAnnotation("annotation is empty")
    try:
        return AnnotationPacket.model_validate_json(blob)
    except ValidationError as exc:
        # Field errors never echo wrapped key bytes back to the caller.
        reasons = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'annotation'}: {error['msg']}"
            for error in exc.errors(include_input=False)
        )
        raise MalformedAnnotation(f"invalid annotation: {reasons}") from None


__all__ = ["AnnotationPacket", "WRAP_TYPE", "decode_annotation", "encode_annotation"]
