from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "VIDEO_RESEARCH_"
DEFAULT_DATA_DIR = Path(".video-research")
SETTINGS_FILE_NAME = "settings.json"
LOG_DIR_NAME = "logs"

TelemetrySinkName = Literal["none", "log"]
TELEMETRY_SINKS: tuple[str, ...] = ("none", "log")

# Paths that follow VIDEO_RESEARCH_DATA_DIR unless set on their own.
_DATA_DIR_CHILDREN: dict[str, str] = {
    "settings_path": SETTINGS_FILE_NAME,
    "log_dir": LOG_DIR_NAME,
}
_FLAG_WORDS: dict[str, bool] = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}


def _env_name(field_name: str | None) -> str:
    return f"{ENV_PREFIX}{(field_name or '').upper()}"


def _absolute(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _read_flag(value: Any, fallback: bool) -> bool:
    """Env flags accept 1/0, true/false, yes/no, on/off; anything else keeps the default."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        return _FLAG_WORDS.get(value.strip().lower(), fallback)
    return fallback


class AppSettings(BaseSettings):
    """
    Runtime configuration for the orchestrator (`VIDEO_RESEARCH_*`).

    Per-user credentials and actor choices are not here: they live in the
    dashboard settings store and are edited through the settings commands.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Runtime directory holding the settings store and the log files.",
    )
    settings_path: Path = Field(
        default=DEFAULT_DATA_DIR / SETTINGS_FILE_NAME,
        description=f"Dashboard settings store. Follows the data dir ({SETTINGS_FILE_NAME}).",
    )
    log_dir: Path = Field(
        default=DEFAULT_DATA_DIR / LOG_DIR_NAME,
        description=f"Log file directory. Follows the data dir ({LOG_DIR_NAME}/).",
    )
    log_level: str = Field(default="INFO", description="Console log level.")

    apify_base_url: str = Field(default="https://api.apify.com/v2")
    apify_proxy_prefix: str | None = Field(
        default=None,
        description=(
            "Relay prefix for Apify calls; the target URL is percent-encoded and "
            "appended (e.g. `https://corsproxy.io/?`)."
        ),
    )
    apify_poll_interval_seconds: float = Field(default=2.0, ge=0.0)
    apify_poll_max_attempts: int = Field(
        default=180,
        ge=1,
        description="Run status polls before giving up (180 x 2s is six minutes).",
    )
    discovery_default_max_results: int = Field(default=50, ge=1)

    transcribe_base_url: str = Field(default="https://api.gettranscribe.ai")
    transcribe_http_timeout_seconds: float = Field(default=120.0, gt=0.0)
    captions_base_url: str = Field(
        default="https://www.youtube.com/api/timedtext",
        description="Public caption track endpoint used when transcription fails.",
    )
    captions_language: str = Field(default="en")
    captions_proxy_prefix: str | None = Field(default=None)
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for Apify and caption requests.",
    )

    telemetry_enabled: bool = Field(default=True)
    telemetry_sink: TelemetrySinkName = Field(
        default="log",
        description="`log` writes telemetry events to their own log file; `none` drops them.",
    )

    @field_validator("apify_base_url", "transcribe_base_url", "captions_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any, info: ValidationInfo) -> str:
        cleaned = value.strip().rstrip("/") if isinstance(value, str) else ""
        if not cleaned:
            raise ValueError(f"{_env_name(info.field_name)} must be a non-empty URL.")
        return cleaned

    @field_validator("apify_proxy_prefix", "captions_proxy_prefix", mode="before")
    @classmethod
    def _blank_prefix_is_unset(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @field_validator("data_dir", "settings_path", "log_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Any:
        if isinstance(value, (str, Path)):
            return _absolute(value)
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
        return "INFO"

    @field_validator("telemetry_enabled", mode="before")
    @classmethod
    def _lenient_flag(cls, value: Any) -> bool:
        return _read_flag(value, fallback=True)

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _known_sink(cls, value: Any) -> str:
        sink = value.strip().lower() if isinstance(value, str) else ""
        if sink not in TELEMETRY_SINKS:
            allowed = ", ".join(TELEMETRY_SINKS)
            raise ValueError(f"{_env_name('telemetry_sink')} must be one of: {allowed}.")
        return sink


def load_settings() -> AppSettings:
    """Read the environment, then place unset child paths under the data dir."""
    settings = AppSettings()
    derived = {
        field_name: settings.data_dir / child
        for field_name, child in _DATA_DIR_CHILDREN.items()
        if field_name not in settings.model_fields_set
    }
    derived.update(
        {
            field_name: _absolute(getattr(settings, field_name))
            for field_name in ("data_dir", *_DATA_DIR_CHILDREN)
            if field_name not in derived
        }
    )
    return settings.model_copy(update=derived)
