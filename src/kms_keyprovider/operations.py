"""Wrap and unwrap of layer keys through a KMS backend."""
from __future__ import annotations

import functools
from typing import Callable, Optional, Tuple, Union

import structlog

from .annotation import decode_annotation, encode_annotation
from .backends.base import KMSBackend
from .errors import BackendError, KeyIdentifierMismatch, KeyProviderError, ProtocolError
from .models import UnwrapRequest, WrapRequest
from .protocol.envelope import (
    KeyProviderOutput,
    KeyUnwrapResults,
    KeyWrapResults,
    parse_input,
)
from .resolver import ParameterResolver, ResolvedKeyIdentifier

EncryptFn = Callable[[str, bytes], bytes]
DecryptFn = Callable[[str, bytes], bytes]

logger = structlog.get_logger(__name__)


def _call_backend(fn: Callable[[str, bytes], bytes], key_name: str, data: bytes) -> bytes:
    try:
        return fn(key_name, data)
    except KeyProviderError:
        raise
    except Exception as exc:
        raise BackendError(str(exc) or type(exc).__name__) from exc


def _wrap(
    request: WrapRequest, resolver: ParameterResolver, encrypt: EncryptFn
) -> Tuple[str, KeyWrapResults]:
    key = resolver.resolve(request.parameters)
    ciphertext = _call_backend(encrypt, key.native_name, request.plaintext_key)
    return key.uri, KeyWrapResults(annotation=encode_annotation(key.uri, ciphertext))


def _unwrap(
    request: UnwrapRequest, resolver: ParameterResolver, decrypt: DecryptFn
) -> Tuple[str, KeyUnwrapResults]:
    packet = decode_annotation(request.annotation)
    requested = resolver.select(request.parameters)
    if requested != packet.key_url:
        raise KeyIdentifierMismatch(requested, packet.key_url)
    key = ResolvedKeyIdentifier.parse(requested)
    plaintext = _call_backend(decrypt, key.native_name, packet.wrapped_key)
    return key.uri, KeyUnwrapResults(opts_data=plaintext)


def wrap_key(request: WrapRequest, resolver: ParameterResolver, encrypt: EncryptFn) -> KeyWrapResults:
    """Encrypt the layer key and package it with the key URI that governs it."""

    return _wrap(request, resolver, encrypt)[1]


def unwrap_key(request: UnwrapRequest, resolver: ParameterResolver, decrypt: DecryptFn) -> KeyUnwrapResults:
    """Recover the layer key recorded in ``request.annotation``.

    The key URI supplied with the request must match the one stored in the
    annotation; it is never replaced by the stored value.
    """

    return _unwrap(request, resolver, decrypt)[1]


class KeyProvider:
    """Bind a KMS backend and a resolver into protocol-level operations."""

    def __init__(self, backend: KMSBackend, resolver: ParameterResolver) -> None:
        self.backend = backend
        self.resolver = resolver

    def wrap(self, request: WrapRequest, *, timeout: Optional[float] = None) -> KeyWrapResults:
        encrypt = functools.partial(self.backend.encrypt, timeout=timeout)
        try:
            key_uri, result = _wrap(request, self.resolver, encrypt)
        except KeyProviderError as exc:
            logger.warning("keyprovider.wrap.failed", error=type(exc).__name__, reason=str(exc))
            raise
        logger.info("keyprovider.wrap", key=key_uri, backend=self.backend.name)
        return result

    def unwrap(self, request: UnwrapRequest, *, timeout: Optional[float] = None) -> KeyUnwrapResults:
        decrypt = functools.partial(self.backend.decrypt, timeout=timeout)
        try:
            key_uri, result = _unwrap(request, self.resolver, decrypt)
        except KeyProviderError as exc:
            logger.warning("keyprovider.unwrap.failed", error=type(exc).__name__, reason=str(exc))
            raise
        logger.info("keyprovider.unwrap", key=key_uri, backend=self.backend.name)
        return result

    def handle(
        self, request: Union[WrapRequest, UnwrapRequest], *, timeout: Optional[float] = None
    ) -> KeyProviderOutput:
        if isinstance(request, WrapRequest):
            return KeyProviderOutput(key_wrap_results=self.wrap(request, timeout=timeout))
        if isinstance(request, UnwrapRequest):
            return KeyProviderOutput(key_unwrap_results=self.unwrap(request, timeout=timeout))
        raise ProtocolError(f"Operation {type(request).__name__} not recognized")

    def process(self, payload: bytes | str, *, timeout: Optional[float] = None) -> bytes:
        """Run one serialized protocol request and return the serialized response."""

        request = parse_input(payload).to_request()
        return self.handle(request, timeout=timeout).to_json()


__all__ = ["DecryptFn", "EncryptFn", "KeyProvider", "unwrap_key", "wrap_key"]
