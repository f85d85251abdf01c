"""Key-provider protocol payloads."""
from .envelope import (
    DecryptConfig,
    EncryptConfig,
    KeyProviderInput,
    KeyProviderOutput,
    KeyUnwrapParams,
    KeyUnwrapResults,
    KeyWrapParams,
    KeyWrapResults,
    parse_input,
    parse_output,
)

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
