import os
import sys
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("MCP_MONITOR_CONFIG", "config.toml")
_ENV_PATH = os.getenv("MCP_MONITOR_ENV", ".env")

VerbosityT = Literal["debug", "info", "warning", "error"]

_VERBOSITY_ALIASES = {
    "trace": "debug",
    "information": "info",
    "warn": "warning",
    "critical": "error",
}


def default_logs_root() -> Path:
    """Directory where Cursor writes its per-session log folders."""
    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "Cursor" / "logs"


class TailerSettings(BaseModel):
    max_retries: int = Field(default=5, ge=1)
    base_backoff_ms: int = Field(default=100, ge=1)
    max_backoff_ms: int = Field(default=10_000, ge=1)
    truncation_notice_throttle_ms: int = Field(default=5_000, ge=0)
    stop_grace_ms: int = Field(default=2_000, ge=0)


class BroadcastSettings(BaseModel):
    send_timeout_ms: int = Field(default=5_000, ge=1)
    close_timeout_ms: int = Field(default=1_000, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MCP_MONITOR_",
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
        extra="ignore",
    )

    logs_root: Path = Field(default_factory=default_logs_root)
    log_pattern: str = "Cursor MCP.log"
    poll_interval_ms: int = Field(default=1_000, ge=10)
    reconcile_interval_ms: int = Field(default=5_000, ge=0)
    verbosity: VerbosityT = "info"
    filter: Optional[str] = None

    tailer: TailerSettings = Field(default_factory=TailerSettings)
    broadcast: BroadcastSettings = Field(default_factory=BroadcastSettings)

    host: str = "127.0.0.1"
    port: int = 5050
    console: bool = True
    logs_dir: Path = Field(default=Path("logs"))
    static_path: Optional[Path] = None

    @field_validator("verbosity", mode="before")
    @classmethod
    def normalize_verbosity(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return _VERBOSITY_ALIASES.get(value, value)
        return value

    @field_validator("filter", mode="before")
    @classmethod
    def empty_filter_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
