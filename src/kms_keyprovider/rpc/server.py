"""Async gRPC server exposing the key-provider service."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Type

import grpc
import structlog

from ..errors import (
    BackendError,
    ConfigurationError,
    KeyIdentifierMismatch,
    KeyProviderError,
    MalformedAnnotation,
    MissingProviderParameter,
    ProtocolError,
    UnsupportedKeySchema,
)
from ..models import Operation
from ..operations import KeyProvider
from ..protocol.envelope import parse_input
from .messages import (
    INPUT_FIELD,
    SERVICE_NAME,
    UNWRAP_METHOD,
    WRAP_METHOD,
    KeyProviderInputMessage,
    KeyProviderOutputMessage,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR: Dict[Type[KeyProviderError], grpc.StatusCode] = {
    ProtocolError: grpc.StatusCode.INVALID_ARGUMENT,
    MissingProviderParameter: grpc.StatusCode.INVALID_ARGUMENT,
    UnsupportedKeySchema: grpc.StatusCode.INVALID_ARGUMENT,
    MalformedAnnotation: grpc.StatusCode.INVALID_ARGUMENT,
    KeyIdentifierMismatch: grpc.StatusCode.FAILED_PRECONDITION,
    BackendError: grpc.StatusCode.UNAVAILABLE,
}


def status_for(exc: KeyProviderError) -> grpc.StatusCode:
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return grpc.StatusCode.INTERNAL


class KeyProviderServer:
    """gRPC front-end for a :class:`KeyProvider`."""

    def __init__(
        self,
        provider: KeyProvider,
        *,
        listen: str = "[::]:50051",
        max_concurrent_streams: int = 10,
        grace_period: float = 5.0,
    ) -> None:
        self._provider = provider
        self._listen = listen
        self._max_concurrent_streams = max_concurrent_streams
        self._grace_period = grace_period
        self._shutdown = asyncio.Event()
        self._server: Optional[grpc.aio.Server] = None
        self.port: Optional[int] = None

    async def start(self) -> int:
        """Bind and start serving; returns the bound port."""

        if self._server is not None:
            return self.port or 0
        server = grpc.aio.server(
            options=[("grpc.max_concurrent_streams", self._max_concurrent_streams)]
        )
        server.add_generic_rpc_handlers((self._generic_handler(),))
        try:
            port = server.add_insecure_port(self._listen)
        except RuntimeError as exc:
            raise ConfigurationError(f"failed to listen on {self._listen}: {exc}") from exc
        if port == 0:
            raise ConfigurationError(f"failed to listen on {self._listen}")
        await server.start()
        self._server = server
        self.port = port
        logger.info("grpc.server.start", address=self._listen, port=port)
        return port

    async def serve_forever(self) -> None:
        await self.start()
        await self._shutdown.wait()
        if self._server is not None:
            await self._server.stop(self._grace_period)
            self._server = None
        logger.info("grpc.server.stop")

    async def stop(self) -> None:
        self._shutdown.set()

    def _generic_handler(self) -> grpc.GenericRpcHandler:
        handlers = {
            WRAP_METHOD: grpc.unary_unary_rpc_method_handler(
                self._wrap_key,
                request_deserializer=KeyProviderInputMessage.FromString,
                response_serializer=KeyProviderOutputMessage.SerializeToString,
            ),
            UNWRAP_METHOD: grpc.unary_unary_rpc_method_handler(
                self._unwrap_key,
                request_deserializer=KeyProviderInputMessage.FromString,
                response_serializer=KeyProviderOutputMessage.SerializeToString,
            ),
        }
        return grpc.method_handlers_generic_handler(SERVICE_NAME, handlers)

    async def _wrap_key(self, request: Any, context: grpc.aio.ServicerContext) -> Any:
        return await self._invoke(Operation.WRAP, request, context)

    async def _unwrap_key(self, request: Any, context: grpc.aio.ServicerContext) -> Any:
        return await self._invoke(Operation.UNWRAP, request, context)

    async def _invoke(
        self, operation: Operation, request: Any, context: grpc.aio.ServicerContext
    ) -> Any:
        logger.info("grpc.request", operation=operation.value)
        payload = getattr(request, INPUT_FIELD)
        timeout = context.time_remaining()
        try:
            response = await asyncio.to_thread(self._process, operation, payload, timeout)
        except KeyProviderError as exc:
            code, details = status_for(exc), str(exc)
        except Exception:
            logger.exception("grpc.handler_error", operation=operation.value)
            code, details = grpc.StatusCode.INTERNAL, "internal error"
        else:
            return KeyProviderOutputMessage(KeyProviderKeyWrapProtocolOutput=response)
        await context.abort(code, details)

    def _process(self, operation: Operation, payload: bytes, timeout: Optional[float]) -> bytes:
        envelope = parse_input(payload)
        if envelope.operation is not operation:
            raise ProtocolError(
                f"operation {envelope.operation.value} sent to the {operation.value} method"
            )
        return self._provider.handle(envelope.to_request(), timeout=timeout).to_json()


__all__ = ["KeyProviderServer", "status_for"]
