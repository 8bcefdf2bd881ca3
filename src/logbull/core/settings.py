"""
Configuration models for logbull using Pydantic v2 Settings.

Values come from keyword arguments or from ``LOGBULL_*`` environment
variables; nested sender tunables use ``__`` as delimiter, e.g.
``LOGBULL_SENDER__MAX_WORKERS=4``. A ``Settings`` instance is frozen and is
shared by reference by every component spawned from one logger.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .levels import LogLevel
from .validation import validate_api_key, validate_host_url, validate_project_id


class SenderSettings(BaseModel):
    """Queueing, batching and delivery tunables for one sender."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    queue_capacity: int = Field(
        default=10_000,
        ge=1,
        description="Maximum number of entries buffered before new ones are dropped",
    )
    batch_max_size: int = Field(
        default=1_000,
        ge=1,
        description="Maximum number of entries sent in one request",
    )
    flush_interval_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Interval of the background drain-and-dispatch tick",
    )
    max_workers: int = Field(
        default=10,
        ge=1,
        description="Nominal cap on concurrent delivery tasks",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for a single delivery request",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Mirror sender counters into Prometheus metrics",
    )
    atexit_drain_enabled: bool = Field(
        default=True,
        description="Drain queued entries when the interpreter exits",
    )
    atexit_drain_timeout_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Upper bound on the exit drain of one sender",
    )


class Settings(BaseSettings):
    """Top-level logbull configuration.

    Leaving out ``project_id`` or ``host`` selects console-only mode: entries
    are echoed locally and never sent over the network.
    """

    project_id: str = Field(default="", description="LogBull project UUID")
    host: str = Field(default="", description="Base URL of the LogBull server")
    api_key: str = Field(default="", description="Optional X-API-Key value")
    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Minimum level that is recorded"
    )
    console_echo: bool = Field(
        default=True, description="Print every accepted entry to stdout/stderr"
    )
    sender: SenderSettings = Field(default_factory=SenderSettings)

    model_config = SettingsConfigDict(
        env_prefix="LOGBULL_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("project_id")
    @classmethod
    def _check_project_id(cls, value: str) -> str:
        value = value.strip()
        return validate_project_id(value) if value else value

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        value = value.strip()
        return validate_host_url(value) if value else value

    @field_validator("api_key")
    @classmethod
    def _check_api_key(cls, value: str) -> str:
        value = value.strip()
        return validate_api_key(value) if value else value

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: Any) -> Any:
        if value is None or value == "":
            return LogLevel.INFO
        if isinstance(value, str):
            return LogLevel.parse(value)
        return value

    @property
    def console_only(self) -> bool:
        return not (self.project_id and self.host)


def load_settings(settings: Settings | None = None, **overrides: Any) -> Settings:
    """Build settings from overrides and the environment.

    When ``settings`` is given, ``overrides`` are applied on top of it.

    Raises:
        ConfigurationError: If any value is malformed.
    """
    try:
        if settings is None:
            return Settings(**overrides)
        if not overrides:
            return settings
        data = settings.model_dump()
        data.update(overrides)
        return Settings(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"invalid logbull configuration: {problems}", cause=e
        ) from e


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (
    Settings._check_project_id,
    Settings._check_host,
    Settings._check_api_key,
    Settings._parse_log_level,
)
