"""Socket Mode client configuration loading and validation."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Literal

import yaml
from pydantic import AnyHttpUrl, Field, PositiveFloat
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/socket_mode.yaml"),
    Path("./config/socket_mode.yml"),
)


class SocketModeSettings(BaseSettings):
    """Validated settings for a Socket Mode connection."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="SOCKET_MODE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials + handshake
    app_token: str | None = Field(
        default=None,
        description="App-level bearer token used for apps.connections.open.",
        repr=False,
    )
    open_connection_url: AnyHttpUrl = Field(
        default="https://slack.com/api/apps.connections.open",
        description="Endpoint returning the WebSocket URL for a new connection.",
    )
    handshake_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout for the connection handshake request.",
    )
    debug_reconnects: bool = Field(
        default=False,
        description="Request short-lived connections to exercise the reconnect path.",
    )

    # WebSocket transport
    websocket_open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout for opening the WebSocket connection.",
    )
    websocket_close_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout for the WebSocket closing handshake.",
    )
    frame_pacing_seconds: float = Field(
        default=0.25,
        ge=0,
        description="Delay between handling one inbound frame and reading the next.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the client process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[SocketModeSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # A config file sits between explicit kwargs and the environment.
        return (init_settings, _config_file_source, env_settings, dotenv_settings, file_secret_settings)


def _config_file_source() -> Dict[str, Any]:
    explicit = os.getenv("SOCKET_MODE_CONFIG_FILE")
    candidates = (Path(explicit).expanduser(),) if explicit else DEFAULT_CONFIG_LOCATIONS
    path = next((candidate for candidate in candidates if candidate.is_file()), None)
    if path is None:
        return {}
    try:
        # YAML is a superset of JSON, so .json files load the same way.
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"Failed to read socket mode config file {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid socket mode config file {path}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Socket mode config file {path} must contain a mapping at top level.")
    return raw


@lru_cache()
def get_settings() -> SocketModeSettings:
    """Return memoized socket mode settings."""

    return SocketModeSettings()
