"""Protobuf messages of the ocicrypt ``keyprovider.KeyProviderService``.

Each message wraps the JSON protocol envelope in a single ``bytes`` field.
The classes are built from a descriptor at import time, which keeps the wire
format identical to the upstream ``keyprovider.proto`` without shipping
generated code.
"""
from __future__ import annotations

from typing import Any, Final

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE: Final[str] = "keyprovider"
SERVICE_NAME: Final[str] = f"{PACKAGE}.KeyProviderService"
WRAP_METHOD: Final[str] = "WrapKey"
UNWRAP_METHOD: Final[str] = "UnWrapKey"

_INPUT_MESSAGE = "keyProviderKeyWrapProtocolInput"
_OUTPUT_MESSAGE = "keyProviderKeyWrapProtocolOutput"
INPUT_FIELD: Final[str] = "KeyProviderKeyWrapProtocolInput"
OUTPUT_FIELD: Final[str] = "KeyProviderKeyWrapProtocolOutput"


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    field_type = descriptor_pb2.FieldDescriptorProto
    proto = descriptor_pb2.FileDescriptorProto(
        name="keyprovider.proto", package=PACKAGE, syntax="proto3"
    )
    for message_name, field_name in ((_INPUT_MESSAGE, INPUT_FIELD), (_OUTPUT_MESSAGE, OUTPUT_FIELD)):
        message = proto.message_type.add(name=message_name)
        message.field.add(
            name=field_name,
            number=1,
            type=field_type.TYPE_BYTES,
            label=field_type.LABEL_OPTIONAL,
        )
    service = proto.service.add(name="KeyProviderService")
    for method_name in (WRAP_METHOD, UNWRAP_METHOD):
        service.method.add(
            name=method_name,
            input_type=f".{PACKAGE}.{_INPUT_MESSAGE}",
            output_type=f".{PACKAGE}.{_OUTPUT_MESSAGE}",
        )
    return proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_file_descriptor().SerializeToString())

KeyProviderInputMessage: Any = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.{_INPUT_MESSAGE}")
)
KeyProviderOutputMessage: Any = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.{_OUTPUT_MESSAGE}")
)


def method_path(method_name: str) -> str:
    return f"/{SERVICE_NAME}/{method_name}"


__all__ = [
    "INPUT_FIELD",
    "KeyProviderInputMessage",
    "KeyProviderOutputMessage",
    "OUTPUT_FIELD",
    "SERVICE_NAME",
    "UNWRAP_METHOD",
    "WRAP_METHOD",
    "method_path",
]
