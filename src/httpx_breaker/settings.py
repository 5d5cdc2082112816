from __future__ import annotations

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENV_PREFIX = "CIRCUIT_BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard breaker settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False, frozen=True)


class CircuitBreakerSettings(BaseSettings):
    """Immutable thresholds and timings for one circuit breaker.

    Values may be passed explicitly or read from ``CIRCUIT_BREAKER_*``
    environment variables. Subclass with ``prefixed_settings_config`` to give
    each protected dependency its own prefix.
    """

    model_config = prefixed_settings_config(DEFAULT_ENV_PREFIX)

    id: str | None = None
    threshold: int = 50
    threshold_period_ms: int = 5_000
    reset_period_ms: int = 10_000
    num_requests_to_close_circuit: int = 20

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError("id must be non-empty when provided")
        return normalized

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> CircuitBreakerSettings:
        if self.threshold <= 0:
            raise ValueError("threshold must be > 0")
        if self.threshold_period_ms <= 0:
            raise ValueError("threshold_period_ms must be > 0")
        if self.reset_period_ms <= 0:
            raise ValueError("reset_period_ms must be > 0")
        if self.num_requests_to_close_circuit <= 0:
            raise ValueError("num_requests_to_close_circuit must be > 0")
        return self
