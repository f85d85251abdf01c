"""Shared filesystem path helpers."""
from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs

_APP_NAME = "kms-keyprovider"


def runtime_config_dir() -> Path:
    """Return the per-user configuration directory."""
    dirs = PlatformDirs(appname=_APP_NAME, appauthor=None, roaming=False)
    return Path(dirs.user_config_path)


def default_config_path() -> Path:
    return runtime_config_dir() / "config.yaml"
