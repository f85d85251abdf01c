"""Validation helpers for configuration inputs."""
from __future__ import annotations

import ipaddress
from pathlib import Path

_ANY_HOST = "[::]"


def normalize_listen_address(address: str) -> str:
    """Turn a ``host:port`` listen address into a form gRPC can bind.

    Parameters
    ----------
    address:
        Address such as ``:50051``, ``127.0.0.1:50051`` or ``[::1]:50051``.
        An empty host binds every interface.

    Returns
    -------
    str
        ``host:port`` with IPv6 hosts bracketed.

    Raises
    ------
    ValueError
        If the port is missing or outside ``0..65535``.
    """

    address = address.strip()
    host, sep, port_text = address.rpartition(":")
    if not sep or not port_text.isdigit():
        raise ValueError(f"Listen address '{address}' must be formatted as [host]:port")
    port = int(port_text)
    if port > 65535:
        raise ValueError(f"Port {port} is out of range")
    host = host.strip()
    if not host:
        return f"{_ANY_HOST}:{port}"
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        parsed = ipaddress.ip_address(host)
    except ValueError:
        return f"{host.lower()}:{port}"
    if parsed.version == 6:
        return f"[{parsed}]:{port}"
    return f"{parsed}:{port}"


def resolve_and_check_path(
    path: Path | str,
    *,
    must_exist: bool = False,
    require_file: bool | None = None,
) -> Path:
    """Resolve ``path`` and enforce optional existence constraints.

    Relative paths containing ``..`` components are rejected.
    """

    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        if any(part == ".." for part in candidate.parts):
            raise ValueError(f"Path traversal is not allowed: {path}")
        candidate = Path.cwd() / candidate
    resolved = candidate.resolve(strict=False)

    if must_exist and not resolved.exists():
        raise ValueError(f"Path does not exist: {resolved}")

    if require_file is True and resolved.exists() and not resolved.is_file():
        raise ValueError(f"Expected file path but found directory: {resolved}")
    if require_file is False and resolved.exists() and not resolved.is_dir():
        raise ValueError(f"Expected directory path but found file: {resolved}")

    return resolved


__all__ = ["normalize_listen_address", "resolve_and_check_path"]
