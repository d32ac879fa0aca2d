"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, NonNegativeInt, PositiveFloat
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/scorestream.yaml"),
    Path("./config/scorestream.yml"),
    Path("./config/scorestream.json"),
)


class ClientSettings(BaseSettings):
    """Validated settings for the session client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="SCORESTREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend endpoints
    base_url: AnyUrl = Field(
        default="https://test.bardtest.gg",
        description="Scoring backend base URL used for REST calls and redirects.",
    )
    ws_url: AnyUrl = Field(
        default="wss://test.bardtest.gg/websocket",
        description="Streaming WebSocket endpoint for score frames.",
    )
    play_sessions_path: str = Field(
        default="/api/play-sessions/",
        description="Path prefix of the play-session validation endpoint.",
    )
    results_path: str = Field(
        default="/api/results/",
        description="Path prefix of the result submission endpoint.",
    )
    failed_redirect_path: str = Field(
        default="/failed-play-session",
        description="Page the user is sent to when a session cannot start.",
    )
    success_redirect_path: str = Field(
        default="/progressing-play-session",
        description="Page the user is sent to after results were saved.",
    )
    game_id: str = Field(
        default="unity-demo",
        description="Game identifier sent with validation, results and default frames.",
    )
    transport: Literal["memory", "websocket"] = Field(
        default="websocket",
        description="Streaming transport implementation to use.",
    )
    request_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout applied to validation and result requests.",
    )

    # Reconnection & timing
    reconnect_delay_seconds: PositiveFloat = Field(
        default=5.0,
        description="Fixed delay before each automatic reconnect attempt.",
    )
    reconnect_max_attempts: NonNegativeInt = Field(
        default=3,
        description="Automatic reconnect attempts allowed between successful opens.",
    )
    redirect_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Grace period between a saved result and the success redirect.",
    )
    tick_interval_seconds: PositiveFloat = Field(
        default=1 / 60,
        description="Interval of the driver loop that pumps inbound frames.",
    )

    # Correlation
    correlation_prefix: str = Field(
        default="p",
        description="Prefix of client-generated message identifiers.",
    )
    correlated_games: list[str] = Field(
        default_factory=lambda: ["aim-gridshot"],
        description="Game variants whose frames carry a messageId.",
    )

    # Fallback session parameters when the page URL has no query string
    default_session_id: str = Field(default="test-session-uuid")
    default_variant: str = Field(default="1")
    default_input: str = Field(default="standard")
    default_lang: str = Field(default="en")
    default_test_name: str = Field(default="Unity Test")
    default_test_rank: str = Field(default="1")
    default_device: str = Field(default="standard")

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

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @property
    def base_url_str(self) -> str:
        return str(self.base_url).rstrip("/")

    @property
    def failed_redirect_url(self) -> str:
        return f"{self.base_url_str}{self.failed_redirect_path}"

    @property
    def success_redirect_url(self) -> str:
        return f"{self.base_url_str}{self.success_redirect_path}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._file_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _file_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        for path in ClientSettings._resolve_candidate_paths():
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("SCORESTREAM_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read client config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid client config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Client config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()
