"""Configuration loading for typewatch.

This module provides centralized configuration management:
- Load settings from environment variables (TYPEWATCH_*) and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
"""

import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from typewatch.core.markers import (
    TSC_PASS_COMPLETE_PATTERN,
    TSC_RERUN_PATTERN,
    WatchMarkers,
)
from typewatch.core.models import DEFAULT_INCLUDE, SessionOptions


class Settings(BaseSettings):
    """Type-check session configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_prefix="TYPEWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Project configuration
    root: str = Field(
        default=".",
        description="Project root; diagnostic paths are resolved against it",
    )

    # Checker configuration
    checker: Literal["tsc", "vue-tsc"] = Field(
        default="tsc",
        description="Type checker executable",
    )
    tsconfig: str | None = Field(
        default=None,
        description="Base tsconfig path (defaults to <root>/tsconfig.json)",
    )
    include: list[str] = Field(
        default=list(DEFAULT_INCLUDE),
        description="Globs of type test files written into the temporary tsconfig",
    )
    allow_js: bool = Field(
        default=False,
        description="Also check JavaScript files (--allowJs --checkJs)",
    )
    watch: bool = Field(
        default=False,
        description="Run the checker in watch mode",
    )

    # Watch output markers
    rerun_pattern: str = Field(
        default=TSC_RERUN_PATTERN,
        description="Regular expression announcing a new watch pass",
    )
    pass_complete_pattern: str = Field(
        default=TSC_PASS_COMPLETE_PATTERN,
        description="Regular expression announcing a finished watch pass",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    @field_validator("include")
    @classmethod
    def validate_include(cls, v: list[str]) -> list[str]:
        """Ensure at least one include glob is given."""
        if not v or not all(glob.strip() for glob in v):
            raise ValueError("include must contain at least one non-empty glob")
        return v

    @field_validator("rerun_pattern", "pass_complete_pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Ensure marker patterns are non-empty valid regular expressions."""
        if not v:
            raise ValueError("marker pattern must be non-empty")
        try:
            pattern = re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid marker pattern {v!r}: {e}") from e
        if pattern.search("") is not None:
            raise ValueError(f"marker pattern {v!r} must not match empty text")
        return v

    def watch_markers(self) -> WatchMarkers:
        """Marker policy built from the configured patterns."""
        return WatchMarkers.from_patterns(self.rerun_pattern, self.pass_complete_pattern)

    def session_options(self) -> SessionOptions:
        """Session options for the type checker core."""
        return SessionOptions(
            root=self.root,
            checker=self.checker,
            tsconfig=self.tsconfig,
            include=tuple(self.include),
            allow_js=self.allow_js,
            watch=self.watch,
            markers=self.watch_markers(),
        )


def load_settings(env_file: str | None = None, **overrides: object) -> Settings:
    """Load typewatch settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.
        overrides: Explicit values taking precedence over the environment.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
    return Settings(**overrides)  # type: ignore[arg-type]


__all__ = ["Settings", "load_settings"]
