import base64
import json

import pytest
import structlog.testing

from conftest import KEY_URI, NATIVE_NAME, PROVIDER, FailingBackend, ReversingBackend, params
from kms_keyprovider.annotation import decode_annotation, encode_annotation
from kms_keyprovider.errors import (
    BackendError,
    KeyIdentifierMismatch,
    MalformedAnnotation,
    MissingProviderParameter,
    ProtocolError,
    UnsupportedKeySchema,
)
from kms_keyprovider.models import OverridePolicy, UnwrapRequest, WrapRequest
from kms_keyprovider.operations import KeyProvider, unwrap_key, wrap_key
from kms_keyprovider.protocol import parse_output
from kms_keyprovider.resolver import ParameterResolver

OTHER_URI = "gcpkms://projects/demo/locations/global/keyRings/r1/cryptoKeys/k2/cryptoKeyVersions/1"


def _reverse(_name: str, data: bytes) -> bytes:
    return data[::-1]


def test_wrap_key_builds_annotation(resolver: ParameterResolver) -> None:
    seen = []

    def encrypt(name: str, plaintext: bytes) -> bytes:
        seen.append(name)
        return plaintext[::-1]

    result = wrap_key(WrapRequest(b"layer-key", params()), resolver, encrypt)
    packet = decode_annotation(result.annotation)
    assert seen == [NATIVE_NAME]
    assert packet.key_url == KEY_URI
    assert packet.wrapped_key == b"yek-reyal"
    assert packet.wrap_type == "AES"


def test_unwrap_key_recovers_plaintext(resolver: ParameterResolver) -> None:
    annotation = wrap_key(WrapRequest(b"layer-key", params()), resolver, _reverse).annotation
    result = unwrap_key(UnwrapRequest(annotation, params()), resolver, _reverse)
    assert result.opts_data == b"layer-key"


def test_wrap_propagates_resolver_errors(resolver: ParameterResolver) -> None:
    with pytest.raises(MissingProviderParameter):
        wrap_key(WrapRequest(b"k", {}), resolver, _reverse)
    with pytest.raises(UnsupportedKeySchema):
        wrap_key(WrapRequest(b"k", params("s3://bucket/key")), resolver, _reverse)


def test_backend_failure_becomes_backend_error(resolver: ParameterResolver) -> None:
    def broken(_name: str, _data: bytes) -> bytes:
        raise RuntimeError("kms unreachable")

    with pytest.raises(BackendError, match="kms unreachable"):
        wrap_key(WrapRequest(b"k", params()), resolver, broken)
    annotation = encode_annotation(KEY_URI, b"cipher")
    with pytest.raises(BackendError, match="kms unreachable"):
        unwrap_key(UnwrapRequest(annotation, params()), resolver, broken)


def test_unwrap_rejects_mismatched_identifier(resolver: ParameterResolver) -> None:
    annotation = encode_annotation(KEY_URI, b"cipher")
    calls = []

    def decrypt(name: str, data: bytes) -> bytes:
        calls.append(name)
        return data

    with pytest.raises(KeyIdentifierMismatch) as excinfo:
        unwrap_key(UnwrapRequest(annotation, params(OTHER_URI)), resolver, decrypt)
    assert KEY_URI in str(excinfo.value)
    assert OTHER_URI in str(excinfo.value)
    assert calls == []


def test_unwrap_malformed_annotation_precedes_backend(resolver: ParameterResolver) -> None:
    def decrypt(_name: str, _data: bytes) -> bytes:
        raise AssertionError("backend must not be called")

    with pytest.raises(MalformedAnnotation):
        unwrap_key(UnwrapRequest(b"{broken", params()), resolver, decrypt)


def test_unwrap_missing_parameters_is_not_filled_from_annotation(resolver: ParameterResolver) -> None:
    annotation = encode_annotation(KEY_URI, b"cipher")
    with pytest.raises(MissingProviderParameter):
        unwrap_key(UnwrapRequest(annotation, {}), resolver, _reverse)


def test_unwrap_unsupported_schema_after_match(resolver: ParameterResolver) -> None:
    annotation = encode_annotation("s3://bucket/key", b"cipher")
    with pytest.raises(UnsupportedKeySchema):
        unwrap_key(UnwrapRequest(annotation, params("s3://bucket/key")), resolver, _reverse)


def test_override_wins_on_unwrap_still_checks_annotation() -> None:
    resolver = ParameterResolver(PROVIDER, override=OTHER_URI)
    annotation = encode_annotation(KEY_URI, b"cipher")
    with pytest.raises(KeyIdentifierMismatch):
        unwrap_key(UnwrapRequest(annotation, params()), resolver, _reverse)


def test_provider_end_to_end_scenario(provider: KeyProvider, backend: ReversingBackend) -> None:
    wrap_payload = json.dumps(
        {
            "op": "keywrap",
            "keywrapparams": {
                "ec": {"Parameters": {PROVIDER: [base64.b64encode(KEY_URI.encode()).decode()]}},
                "optsdata": base64.b64encode(b"0123456789abcdef").decode(),
            },
        }
    ).encode("utf-8")
    wrapped = parse_output(provider.process(wrap_payload))
    packet = decode_annotation(wrapped.key_wrap_results.annotation)
    assert packet.key_url == KEY_URI
    assert packet.wrapped_key == b"fedcba9876543210"
    assert packet.wrap_type == "AES"

    unwrap_payload = json.dumps(
        {
            "op": "keyunwrap",
            "keyunwrapparams": {
                "dc": {"Parameters": {PROVIDER: [base64.b64encode(KEY_URI.encode()).decode()]}},
                "annotation": base64.b64encode(wrapped.key_wrap_results.annotation).decode(),
            },
        }
    ).encode("utf-8")
    unwrapped = parse_output(provider.process(unwrap_payload))
    assert unwrapped.key_unwrap_results.opts_data == b"0123456789abcdef"
    assert [call[0] for call in backend.calls] == ["encrypt", "decrypt"]


def test_provider_threads_timeout_to_backend(provider: KeyProvider, backend: ReversingBackend) -> None:
    provider.wrap(WrapRequest(b"k", params()), timeout=2.5)
    assert backend.calls[-1][3] == 2.5


def test_provider_wraps_backend_failures() -> None:
    provider = KeyProvider(FailingBackend(), ParameterResolver(PROVIDER))
    with pytest.raises(BackendError, match="permission denied"):
        provider.wrap(WrapRequest(b"k", params()))


def test_provider_process_rejects_bad_envelope(provider: KeyProvider) -> None:
    with pytest.raises(ProtocolError):
        provider.process(b'{"op": "nope"}')


def test_provider_handle_rejects_unknown_request(provider: KeyProvider) -> None:
    with pytest.raises(ProtocolError):
        provider.handle(object())  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("policy", "expected"),
    [(OverridePolicy.OVERRIDE_WINS, OTHER_URI), (OverridePolicy.REQUEST_WINS, KEY_URI)],
)
def test_override_policy_pins_wrap_key(policy: OverridePolicy, expected: str) -> None:
    provider = KeyProvider(ReversingBackend(), ParameterResolver(PROVIDER, override=OTHER_URI, policy=policy))
    result = provider.wrap(WrapRequest(b"k", params()))
    assert decode_annotation(result.annotation).key_url == expected


def test_provider_logs_key_uri_without_key_material(provider: KeyProvider) -> None:
    with structlog.testing.capture_logs() as captured:
        annotation = provider.wrap(WrapRequest(b"layer-key", params())).annotation
        provider.unwrap(UnwrapRequest(annotation, params()))

    events = {entry["event"]: entry for entry in captured}
    assert events["keyprovider.wrap"]["key"] == KEY_URI
    assert events["keyprovider.unwrap"]["key"] == KEY_URI
    assert events["keyprovider.wrap"]["backend"] == provider.backend.name
    for entry in captured:
        assert "layer-key" not in repr(entry)
