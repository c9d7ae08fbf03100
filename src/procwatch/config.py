from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Self

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from procwatch.constants import (
    COMPLETED_SENTINELS,
    DEFAULT_BASE_URL,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_STATS_WINDOW_DAYS,
    FAILED_SENTINELS,
    PROCESS_STREAM_PATH,
)
from procwatch.exceptions import ConfigError
from procwatch.logging import get_logger

__all__ = [
    "ProcwatchConfig",
    "ApiConfig",
    "PollingConfig",
    "StreamConfig",
    "BufferConfig",
    "SentinelConfig",
    "load_config",
    "get_user_config_path",
]

logger = get_logger(__name__)


class ApiConfig(BaseModel):
    """Settings for the process supervisor REST API.

    Attributes:
        base_url: Base URL every endpoint path is appended to.
        request_timeout: Total timeout for one request in seconds.
    """

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0, le=300)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


class PollingConfig(BaseModel):
    """Settings for the periodic snapshot reconciliation."""

    interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0, le=3600)
    stats_window_days: int = Field(default=DEFAULT_STATS_WINDOW_DAYS, ge=1, le=365)


class StreamConfig(BaseModel):
    """Settings for the log stream connection.

    Attributes:
        path: Stream endpoint path relative to ``api.base_url``.
        auto_reconnect: Reopen the stream after it closes. Off by default;
            the connection indicator then stays "closed" until an explicit
            reconnect.
        max_attempts: Reconnect attempts before giving up. Only a reopened
            stream that stays up restores the budget.
        initial_delay: Delay in seconds before the first reconnect attempt
            (doubles per attempt).
        max_delay: Upper bound on a single backoff delay in seconds.
        stable_after: Seconds a reopened stream must stay open, when it
            delivers no frame, before it counts as recovered.
    """

    path: str = PROCESS_STREAM_PATH
    auto_reconnect: bool = False
    max_attempts: int = Field(default=5, ge=1, le=100)
    initial_delay: float = Field(default=1.0, gt=0, le=60)
    max_delay: float = Field(default=30.0, gt=0, le=600)
    stable_after: float = Field(default=10.0, gt=0, le=3600)

    @model_validator(mode="after")
    def check_delays(self) -> Self:
        if self.max_delay < self.initial_delay:
            logger.warning(
                "stream.max_delay is below stream.initial_delay; "
                "every reconnect will wait max_delay."
            )
        return self


class BufferConfig(BaseModel):
    """Settings for per-task log buffers.

    Attributes:
        max_records_per_task: Ring size per task. None keeps every record
            until the operator clears the task.
    """

    max_records_per_task: int | None = Field(default=None, gt=0)


class SentinelConfig(BaseModel):
    """System-channel phrases that trigger an early snapshot refresh."""

    completed: list[str] = Field(default_factory=lambda: list(COMPLETED_SENTINELS))
    failed: list[str] = Field(default_factory=lambda: list(FAILED_SENTINELS))

    @property
    def phrases(self) -> tuple[str, ...]:
        return (*self.completed, *self.failed)


class YamlConfigSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from YAML files."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file = yaml_file
        self._config_data: dict[str, Any] = {}
        if yaml_file and yaml_file.exists():
            try:
                with open(yaml_file, encoding="utf-8") as f:
                    loaded = yaml.safe_load(f)
                    if loaded is None:
                        logger.warning(
                            f"Config file {yaml_file} is empty, using defaults."
                        )
                    elif isinstance(loaded, dict):
                        self._config_data = loaded
                    else:
                        raise ConfigError(
                            message=f"Config file {yaml_file} must contain a mapping",
                            field=None,
                            value=loaded,
                        )
            except yaml.YAMLError as e:
                raise ConfigError(
                    message=f"Invalid YAML in {yaml_file}: {e}",
                    field=None,
                    value=None,
                ) from e

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get value for a specific field from the YAML config."""
        if field_name in self._config_data:
            return self._config_data[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return the complete config data."""
        return self._config_data


class ProcwatchConfig(BaseSettings):
    """Root configuration object containing all procwatch settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROCWATCH_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    buffers: BufferConfig = Field(default_factory=BufferConfig)
    sentinels: SentinelConfig = Field(default_factory=SentinelConfig)
    verbosity: Literal["error", "warning", "info", "debug"] = "warning"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize the order of settings sources.

        Priority (highest to lowest):
        1. Init kwargs (explicit overrides, e.g. from CLI flags)
        2. Environment variables (PROCWATCH_*)
        3. Project YAML config (./procwatch.yaml, or the --config path)
        4. User YAML config (~/.config/procwatch/config.yaml)
        5. Model defaults
        """
        project_config_path = _project_config_override or (
            Path.cwd() / "procwatch.yaml"
        )
        return (
            init_settings,
            env_settings,
            YamlConfigSource(settings_cls, project_config_path),
            YamlConfigSource(settings_cls, get_user_config_path()),
        )


# Set by load_config() for the duration of one ProcwatchConfig() construction.
_project_config_override: Path | None = None


def get_user_config_path() -> Path:
    """Get the path to the user configuration file.

    Returns:
        Path to ~/.config/procwatch/config.yaml
    """
    return Path.home() / ".config" / "procwatch" / "config.yaml"


def load_config(
    config_path: Path | None = None,
    **overrides: Any,
) -> ProcwatchConfig:
    """Load configuration with hierarchy: defaults -> user -> project -> env.

    Args:
        config_path: Optional path to the project config file. Defaults to
            ./procwatch.yaml.
        **overrides: Top-level sections or values that take precedence over
            every other source (e.g. ``api={"base_url": ...}``).

    Returns:
        ProcwatchConfig instance with merged configuration.

    Raises:
        ConfigError: If configuration is invalid.
    """
    global _project_config_override

    if config_path is None:
        config_path = Path.cwd() / "procwatch.yaml"

    if not config_path.exists():
        logger.info("No project configuration found, using defaults.")

    _project_config_override = config_path
    try:
        return ProcwatchConfig(**overrides)
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        raise ConfigError(
            message=f"Invalid configuration: {first_error['msg']}",
            field=field,
            value=first_error.get("input"),
        ) from e
    finally:
        _project_config_override = None
