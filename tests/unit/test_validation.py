from pathlib import Path

import pytest

from kms_keyprovider.utils.encoding import b64d, b64e
from kms_keyprovider.utils.validation import normalize_listen_address, resolve_and_check_path


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        (":50051", "[::]:50051"),
        ("127.0.0.1:50051", "127.0.0.1:50051"),
        ("[::1]:7000", "[::1]:7000"),
        ("LOCALHOST:0", "localhost:0"),
        (" 0.0.0.0:9 ", "0.0.0.0:9"),
    ],
)
def test_normalize_listen_address(address: str, expected: str) -> None:
    assert normalize_listen_address(address) == expected


@pytest.mark.parametrize("address", ["", "50051", "host:", "host:port", ":70000"])
def test_normalize_listen_address_rejects(address: str) -> None:
    with pytest.raises(ValueError):
        normalize_listen_address(address)


def test_resolve_and_check_path_rejects_traversal() -> None:
    with pytest.raises(ValueError):
        resolve_and_check_path(Path("..") / "secret")


def test_resolve_and_check_path_requires_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        resolve_and_check_path(tmp_path / "missing.json", must_exist=True)
    with pytest.raises(ValueError):
        resolve_and_check_path(tmp_path, require_file=True)
    target = tmp_path / "adc.json"
    target.write_text("{}", encoding="utf-8")
    assert resolve_and_check_path(target, must_exist=True, require_file=True) == target.resolve()


def test_base64_helpers_match_go_encoding() -> None:
    assert b64e(b"\xfb\xff") == "+/8="
    assert b64d("+/8=") == b"\xfb\xff"
    with pytest.raises(ValueError):
        b64d("-_8")
