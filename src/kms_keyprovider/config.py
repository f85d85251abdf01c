"""Configuration loading utilities for the key-provider."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import OverridePolicy
from .paths import runtime_config_dir
from .resolver import DEFAULT_PROVIDER_NAME, GCP_KMS_SCHEME
from .utils.validation import normalize_listen_address, resolve_and_check_path

_BACKENDS = ("gcpkms", "local")


class KMSConfig(BaseModel):
    backend: str = Field(default="gcpkms", description="KMS backend: gcpkms|local")
    credentials_file: Optional[Path] = Field(default=None, description="Path to an ADC credentials file")
    key_uri: Optional[str] = Field(default=None, description="Deployment-pinned KMS key URI")
    override_policy: OverridePolicy = Field(default=OverridePolicy.OVERRIDE_WINS)
    provider_name: str = Field(default=DEFAULT_PROVIDER_NAME, min_length=1)
    local_key_env: str = Field(default="KMS_KEYPROVIDER_LOCAL_KEY")

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in _BACKENDS:
            raise ValueError(f"backend must be one of {', '.join(_BACKENDS)}")
        return value

    @field_validator("key_uri")
    @classmethod
    def _validate_key_uri(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not value.startswith(GCP_KMS_SCHEME):
            raise ValueError(f"key_uri must start with {GCP_KMS_SCHEME}")
        return value

    @field_validator("credentials_file")
    @classmethod
    def _validate_credentials_file(cls, value: Optional[Path]) -> Optional[Path]:
        if value is None:
            return None
        return resolve_and_check_path(value, must_exist=True, require_file=True)


class ServerConfig(BaseModel):
    listen: str = Field(default=":50051", validate_default=True, description="gRPC listen address")
    max_concurrent_streams: int = Field(default=10, ge=1)
    grace_period: float = Field(default=5.0, ge=0)

    @field_validator("listen")
    @classmethod
    def _validate_listen(cls, value: str) -> str:
        return normalize_listen_address(value)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return self.level.upper()


class AppConfig(BaseModel):
    kms: KMSConfig = Field(default_factory=KMSConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def with_overrides(self, section: str, **values: Any) -> "AppConfig":
        """Return a copy with non-``None`` ``values`` applied to ``section``."""

        updates = {key: value for key, value in values.items() if value is not None}
        if not updates:
            return self
        current = getattr(self, section).model_dump()
        current.update(updates)
        try:
            replaced = type(getattr(self, section)).model_validate(current)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid {section} settings: {exc}") from exc
        return self.model_copy(update={section: replaced})


DEFAULT_CONFIG = AppConfig()


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    yield Path.cwd() / ".kms-keyprovider" / "config.yaml"
    yield runtime_config_dir() / "config.yaml"


def config_from_mapping(data: Mapping[str, Any], source: str = "<mapping>") -> AppConfig:
    try:
        return AppConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {source}: {exc}") from exc


def load_config(path: Optional[Path] = None) -> AppConfig:
    if path is not None and not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                try:
                    data = yaml.safe_load(handle) or {}
                except yaml.YAMLError as exc:
                    raise ConfigurationError(f"Invalid YAML in {candidate}: {exc}") from exc
            if not isinstance(data, Mapping):
                raise ConfigurationError(f"Configuration in {candidate} must be a mapping")
            return config_from_mapping(data, str(candidate))
    return DEFAULT_CONFIG.model_copy(deep=True)


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(mode="json"), handle, sort_keys=False)


__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG",
    "KMSConfig",
    "LoggingConfig",
    "ServerConfig",
    "config_from_mapping",
    "config_search_paths",
    "dump_default_config",
    "load_config",
]
