"""
Logger configuration.

``LoggerOptions`` carries construction-time options. ``LoggerSettings`` reads
defaults from ``LOGWEAVE_*`` environment variables (and ``.env``); it is only
consulted when a caller asks for it::

    from logweave import create_logger
    from logweave.config import LoggerSettings

    logger = create_logger(LoggerSettings().to_options(sinks=[...]))
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .levels import LogLevel
from .sinks import BaseSink, ConsoleFormat


class LoggerOptions(BaseModel):
    """Construction-time options of a logger."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    sinks: List[BaseSink] = Field(default_factory=list, description="User sinks, delivered to in order")
    use_default_console_sink: bool = Field(default=True, description="Append a console sink after user sinks")
    silent: bool = Field(default=False, description="Run the pipeline but skip every sink")
    level: Optional[LogLevel] = Field(default=None, description="Minimum severity; None allows all")
    service_name: Optional[str] = Field(default=None, description="Default serviceName field")
    on_error: Optional[Callable[[Exception], Any]] = Field(
        default=None, description="Replaces the default stderr error handler"
    )
    console_format: ConsoleFormat = Field(default="json", description="Default console sink format")
    processors: List[Callable[..., Any]] = Field(
        default_factory=list, description="Extra processors run before the final representation"
    )
    clock: Optional[Callable[[], Any]] = Field(default=None, description="Timestamp source (aware datetime)")

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Optional[LogLevel]:
        if value is None or value == "":
            return None
        return LogLevel.parse(value)


class LoggerSettings(BaseSettings):
    """Environment-driven logger defaults."""

    model_config = SettingsConfigDict(
        env_prefix="LOGWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    level: Optional[LogLevel] = Field(default=None, description="Minimum severity")
    service_name: Optional[str] = Field(default=None, description="Default serviceName field")
    silent: bool = Field(default=False, description="Skip every sink")
    use_default_console_sink: bool = Field(default=True, description="Append a console sink")
    console_format: ConsoleFormat = Field(default="json", description="Console sink format")

    def to_options(self, **overrides: Any) -> LoggerOptions:
        values = self.model_dump()
        values.update(overrides)
        return LoggerOptions(**values)
