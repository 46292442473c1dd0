"""Configuration models for the resilience layer.

Pydantic models describing retry presets, circuit breaker thresholds,
recovery plan templates, classification patterns and logging. The models are
plain data: runtime value objects such as ``RetryPolicy`` are built from them
(see ``RetryPolicy.from_config``).

Example YAML::

    retry:
      max_attempts: 4
      base_delay_seconds: 0.5
    circuit_breaker:
      failure_threshold: 5
    presets:
      storage:
        max_attempts: 3
        base_delay_seconds: 1.0
        max_delay_seconds: 10.0
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from steadfast.core.errors.classifier import DEFAULT_LOCALE, DEFAULT_TRANSIENT_PATTERNS
from steadfast.core.errors.exceptions import ConfigurationError


class RetryConfig(BaseModel):
    """Configuration for one retry/backoff policy."""

    max_attempts: int = Field(default=3, ge=1, description="Total attempts, first call included")
    base_delay_seconds: float = Field(
        default=1.0, gt=0, description="Delay after the first failure"
    )
    max_delay_seconds: float | None = Field(
        default=None, gt=0, description="Upper bound on any single delay"
    )
    backoff_multiplier: float = Field(default=2.0, ge=1, description="Exponential backoff base")
    jitter: bool = Field(
        default=True, description="Scale each delay by a random factor in [0.5, 1]"
    )

    @model_validator(mode="after")
    def _validate_delay_range(self) -> RetryConfig:
        if self.max_delay_seconds is not None and self.base_delay_seconds > self.max_delay_seconds:
            raise ValueError(
                f"base_delay_seconds ({self.base_delay_seconds}) must not exceed "
                f"max_delay_seconds ({self.max_delay_seconds})"
            )
        return self


def _default_presets() -> dict[str, RetryConfig]:
    return {
        "storage": RetryConfig(
            max_attempts=3, base_delay_seconds=1.0, max_delay_seconds=10.0, backoff_multiplier=2.0
        ),
        "identity": RetryConfig(
            max_attempts=2, base_delay_seconds=0.5, max_delay_seconds=5.0, backoff_multiplier=2.0
        ),
        "profile_operations": RetryConfig(
            max_attempts=3, base_delay_seconds=1.0, max_delay_seconds=8.0, backoff_multiplier=1.5
        ),
        "network": RetryConfig(
            max_attempts=5, base_delay_seconds=2.0, max_delay_seconds=30.0, backoff_multiplier=2.0
        ),
    }


class CircuitBreakerConfig(BaseModel):
    """Configuration for the per-key circuit breaker.

    State transitions:
    - CLOSED -> OPEN: after ``failure_threshold`` consecutive failed calls
    - OPEN -> CLOSED: only on an explicit reset, unless a recovery timeout
      is configured, in which case OPEN -> HALF_OPEN after the timeout and a
      single probe call decides between CLOSED and OPEN
    """

    failure_threshold: int = Field(default=5, ge=1)
    recovery_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Seconds before an open breaker admits a probe; None disables half-open",
    )


class RecoveryConfig(BaseModel):
    """Configuration for recovery plan templates and recovery execution."""

    login_path: str = "/auth/login"
    profile_create_path: str = Field(
        default="/profile/create/{profile_type}",
        description="Redirect target for a missing profile; {profile_type} is substituted",
    )
    profile_select_path: str = "/profile/select"
    profile_creation_recovery_seconds: float = Field(default=30.0, ge=0)
    storage_recovery_seconds: float = Field(default=15.0, ge=0)
    transient_recovery_seconds: float = Field(default=10.0, ge=0)
    retry_transient_unclassified: bool = Field(
        default=False,
        description="Give retryable unclassified errors a retry plan instead of a manual one",
    )
    failed_recovery_threshold: int = Field(
        default=3,
        ge=0,
        description="Failed recoveries of a pattern beyond which retry actions are shortened",
    )
    degraded_retry_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempts given to retry actions of a pattern past the threshold",
    )
    retry: RetryConfig = Field(
        default_factory=lambda: RetryConfig(
            max_attempts=3, base_delay_seconds=1.0, max_delay_seconds=10.0
        )
    )

    @model_validator(mode="after")
    def _validate_create_path(self) -> RecoveryConfig:
        if "{profile_type}" not in self.profile_create_path:
            raise ValueError("profile_create_path must contain '{profile_type}'")
        return self


class ClassifierConfig(BaseModel):
    """Configuration for message-pattern classification."""

    transient_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRANSIENT_PATTERNS),
        description="Case-insensitive regexes marking an unclassified failure as retryable",
    )
    locale: str = Field(default=DEFAULT_LOCALE, description="Locale for user-facing messages")


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console", "both"] = "console"
    file_path: Path | None = None

    @model_validator(mode="after")
    def _validate_file_path(self) -> LoggingConfig:
        if self.format == "both" and self.file_path is None:
            raise ValueError("logging.file_path is required when format is 'both'")
        return self


class ResilienceConfig(BaseModel):
    """Root configuration for the resilience layer."""

    retry: RetryConfig = Field(default_factory=RetryConfig)
    presets: dict[str, RetryConfig] = Field(default_factory=_default_presets)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def preset(self, name: str) -> RetryConfig:
        """Look up a named retry preset.

        Raises:
            ConfigurationError: If no preset has that name.
        """
        try:
            return self.presets[name]
        except KeyError:
            available = ", ".join(sorted(self.presets)) or "none"
            raise ConfigurationError(
                f"Unknown retry preset '{name}' (available: {available})"
            ) from None


def load_config(path: Path | None) -> ResilienceConfig:
    """Load configuration from a YAML file.

    A missing path (or None) yields the defaults.

    Args:
        path: Path to a YAML file.

    Returns:
        The validated ResilienceConfig.

    Raises:
        ConfigurationError: If the file cannot be parsed or fails validation.
    """
    if path is None or not path.exists():
        return ResilienceConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")

    try:
        return ResilienceConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e


__all__ = [
    "CircuitBreakerConfig",
    "ClassifierConfig",
    "LoggingConfig",
    "RecoveryConfig",
    "ResilienceConfig",
    "RetryConfig",
    "load_config",
]
