"""Shared domain models used across the key-provider."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Tuple

Parameters = Mapping[str, Tuple[bytes, ...]]


class Operation(str, Enum):
    WRAP = "keywrap"
    UNWRAP = "keyunwrap"


class OverridePolicy(str, Enum):
    """How a deployment-pinned key URI interacts with per-request parameters."""

    OVERRIDE_WINS = "override-wins"
    REQUEST_WINS = "request-wins"


@dataclass(frozen=True, slots=True)
class WrapRequest:
    plaintext_key: bytes = field(repr=False)
    parameters: Parameters = field(default_factory=dict)

    @property
    def operation(self) -> Operation:
        return Operation.WRAP


@dataclass(frozen=True, slots=True)
class UnwrapRequest:
    annotation: bytes
    parameters: Parameters = field(default_factory=dict)

    @property
    def operation(self) -> Operation:
        return Operation.UNWRAP


def freeze_parameters(raw: Mapping[str, list[bytes]] | None) -> dict[str, Tuple[bytes, ...]]:
    if not raw:
        return {}
    return {name: tuple(values) for name, values in raw.items()}


__all__ = [
    "Operation",
    "OverridePolicy",
    "Parameters",
    "WrapRequest",
    "UnwrapRequest",
    "freeze_parameters",
]
