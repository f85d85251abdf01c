"""Key-provider protocol envelope exchanged with ocicrypt.

The JSON layout mirrors the Go structures used by ocicrypt's
``keywrap/keyprovider`` package: byte slices travel as standard base64 and
the encrypt/decrypt configs carry a ``Parameters`` map of provider name to a
list of values.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from ..errors import ProtocolError
from ..models import Operation, UnwrapRequest, WrapRequest, freeze_parameters
from ..utils.encoding import Base64Bytes


def _none_as_empty(value: Any) -> Any:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {name: ([] if values is None else values) for name, values in value.items()}
    return value


def _describe(exc: ValidationError, default: str) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or default}: {error['msg']}"
        for error in exc.errors(include_input=False)
    )


class _CryptoConfig(BaseModel):
    # populate_by_name also admits the lower-case "parameters" spelling.
    parameters: Dict[str, List[Base64Bytes]] = Field(default_factory=dict, alias="Parameters")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("parameters", mode="before")
    @classmethod
    def _coerce_parameters(cls, value: Any) -> Any:
        return _none_as_empty(value)


class EncryptConfig(_CryptoConfig):
    pass


class DecryptConfig(_CryptoConfig):
    pass


class KeyWrapParams(BaseModel):
    ec: Optional[EncryptConfig] = None
    opts_data: Base64Bytes = Field(default=b"", alias="optsdata", repr=False)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class KeyUnwrapParams(BaseModel):
    dc: Optional[DecryptConfig] = None
    annotation: Base64Bytes = b""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class KeyProviderInput(BaseModel):
    """Incoming key-provider protocol request."""

    operation: Operation = Field(alias="op")
    key_wrap_params: KeyWrapParams = Field(default_factory=KeyWrapParams, alias="keywrapparams")
    key_unwrap_params: KeyUnwrapParams = Field(default_factory=KeyUnwrapParams, alias="keyunwrapparams")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("key_wrap_params", "key_unwrap_params", mode="before")
    @classmethod
    def _null_params(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return KeyWrapParams() if info.field_name == "key_wrap_params" else KeyUnwrapParams()
        return value

    def to_request(self) -> Union[WrapRequest, UnwrapRequest]:
        if self.operation is Operation.WRAP:
            wrap_params = self.key_wrap_params
            parameters = wrap_params.ec.parameters if wrap_params.ec else None
            return WrapRequest(
                plaintext_key=wrap_params.opts_data, parameters=freeze_parameters(parameters)
            )
        unwrap_params = self.key_unwrap_params
        parameters = unwrap_params.dc.parameters if unwrap_params.dc else None
        return UnwrapRequest(
            annotation=unwrap_params.annotation, parameters=freeze_parameters(parameters)
        )

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    @classmethod
    def for_request(cls, request: Union[WrapRequest, UnwrapRequest]) -> "KeyProviderInput":
        """Build the envelope a client sends for ``request``.

        This is the inverse of :meth:`to_request`, for callers that drive a
        key-provider rather than serve one.
        """

        parameters = {name: list(values) for name, values in request.parameters.items()}
        if isinstance(request, WrapRequest):
            return cls(
                operation=Operation.WRAP,
                key_wrap_params=KeyWrapParams(
                    ec=EncryptConfig(parameters=parameters), opts_data=request.plaintext_key
                ),
            )
        return cls(
            operation=Operation.UNWRAP,
            key_unwrap_params=KeyUnwrapParams(
                dc=DecryptConfig(parameters=parameters), annotation=request.annotation
            ),
        )


class KeyWrapResults(BaseModel):
    annotation: Base64Bytes

    model_config = ConfigDict(extra="ignore")


class KeyUnwrapResults(BaseModel):
    opts_data: Base64Bytes = Field(alias="optsdata", repr=False)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class KeyProviderOutput(BaseModel):
    """Outgoing key-provider protocol response."""

    key_wrap_results: Optional[KeyWrapResults] = Field(default=None, alias="keywrapresults")
    key_unwrap_results: Optional[KeyUnwrapResults] = Field(default=None, alias="keyunwrapresults")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


def parse_input(payload: bytes | str) -> KeyProviderInput:
    """Parse a JSON payload into a :class:`KeyProviderInput`."""

    try:
        return KeyProviderInput.model_validate_json(payload)
    except ValidationError as exc:
        raise ProtocolError(f"invalid key provider input: {_describe(exc, 'request')}") from None


def parse_output(payload: bytes | str) -> KeyProviderOutput:
    """Parse a JSON payload into a :class:`KeyProviderOutput`."""

    try:
        return KeyProviderOutput.model_validate_json(payload)
    except ValidationError as exc:
        raise ProtocolError(f"invalid key provider output: {_describe(exc, 'response')}") from None


__all__ = [
    "DecryptConfig",
    "EncryptConfig",
    "KeyProviderInput",
    "KeyProviderOutput",
    "KeyUnwrapParams",
    "KeyUnwrapResults",
    "KeyWrapParams",
    "KeyWrapResults",
    "parse_input",
    "parse_output",
]
