"""Configuration loading for the versioned test orchestrator.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
- Convert settings into the core SuiteOptions
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from versioned.core.models import SuiteOptions


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Every field can be set with a VERSIONED_-prefixed environment
    variable; list fields take JSON (e.g. VERSIONED_TEST_PATTERNS='["unit"]').
    """

    model_config = SettingsConfigDict(
        env_prefix="VERSIONED_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Scheduling
    limit: int = Field(
        default=1,
        description="Concurrent test runs (also bounds registry lookups)",
    )
    install_limit: int = Field(
        default=1,
        description="Concurrent dependency installs",
    )
    versions: Literal["major", "minor", "patch", "all"] = Field(
        default="minor",
        description="Version-selection mode",
    )
    test_patterns: list[str] = Field(
        default_factory=list,
        description="Regexes selecting which test files run (empty runs all)",
    )
    global_samples: int | None = Field(
        default=None,
        description="Versions sampled per range when a test sets no samples",
    )
    test_folders: list[str] = Field(
        default_factory=list,
        description="Test folders to run when none are given on the command line",
    )

    # Registry
    registry_url: str = Field(
        default="https://registry.npmjs.org",
        description="npm-compatible registry base URL",
    )
    registry_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for a single registry request",
    )

    # Runner
    install_command: str = Field(
        default="npm install --no-save",
        description="Command prefix used to install name@version arguments",
    )
    run_command: str = Field(
        default="node",
        description="Command prefix used to execute a test file",
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
    verbose: bool = Field(
        default=False,
        description="Print every status transition and failed test output",
    )

    @field_validator("limit", "install_limit")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        """Ensure concurrency limits are positive."""
        if v < 1:
            raise ValueError("concurrency limits must be >= 1")
        return v

    @field_validator("global_samples")
    @classmethod
    def validate_global_samples(cls, v: int | None) -> int | None:
        """Ensure sample count is positive when set."""
        if v is not None and v < 1:
            raise ValueError("global_samples must be >= 1")
        return v

    @field_validator("registry_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure registry timeout is positive."""
        if v <= 0:
            raise ValueError("registry_timeout_seconds must be positive")
        return v

    def suite_options(self) -> SuiteOptions:
        """Build the core SuiteOptions from these settings."""
        return SuiteOptions(
            limit=self.limit,
            install_limit=self.install_limit,
            versions=self.versions,
            test_patterns=tuple(self.test_patterns),
            global_samples=self.global_samples,
        )


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
