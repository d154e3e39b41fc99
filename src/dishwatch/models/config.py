from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
    TomlConfigSettingsSource,
)

from dishwatch.errors import ConfigError

DEFAULT_ENDPOINT = "ws://192.168.100.1:9201/status"


class AppSettings(BaseSettings):
    """Service settings from CLI overrides, environment, .env and ``config.toml``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DISHWATCH_",
        toml_file="config.toml",
        extra="ignore",
    )

    endpoint: str = DEFAULT_ENDPOINT
    history_capacity: int = Field(default=300, ge=1)
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    reconnect_delay: float = Field(default=5.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    viewer_queue_size: int = Field(default=16, ge=1)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @model_validator(mode="before")
    @classmethod
    def _accept_grpc_endpoint(cls, data: Any) -> Any:
        # Older config files name the upstream address ``grpc_endpoint``.
        if isinstance(data, dict) and "endpoint" not in data and "grpc_endpoint" in data:
            data = {**data, "endpoint": data["grpc_endpoint"]}
        return data

    @field_validator("endpoint")
    @classmethod
    def _check_endpoint(cls, value: str) -> str:
        parsed = urlparse(value.strip())
        if parsed.scheme not in ("ws", "wss"):
            raise ValueError(f"endpoint must be a ws:// or wss:// URL, got {value!r}")
        if not parsed.hostname:
            raise ValueError(f"endpoint has no host: {value!r}")
        return value.strip()


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> AppSettings:
    """Build :class:`AppSettings`, turning any validation problem into :class:`ConfigError`.

    *overrides* whose value is ``None`` are ignored so unset CLI flags fall
    through to the environment and the config file.
    """
    settings_cls: type[AppSettings] = AppSettings
    if config_file is not None:
        path = Path(config_file).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        class _FileSettings(AppSettings):
            model_config = SettingsConfigDict(toml_file=path)

        settings_cls = _FileSettings

    init = {key: value for key, value in overrides.items() if value is not None}
    try:
        return settings_cls(**init)
    except (tomllib.TOMLDecodeError, SettingsError) as exc:
        raise ConfigError(f"Could not read settings: {exc}") from exc
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigError(f"Invalid settings: {problems}") from exc
