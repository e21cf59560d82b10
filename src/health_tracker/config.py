"""Configuration management using pydantic-settings."""

import threading

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Valid log levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class StorageSettings(BaseSettings):
    """Snapshot file settings."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    snapshot_path: str = Field(
        default="data/storage.json", description="Path of the JSON snapshot file"
    )

    @field_validator("snapshot_path")
    @classmethod
    def validate_snapshot_path(cls, v: str) -> str:
        """Validate the snapshot path is not blank."""
        if not v or not v.strip():
            raise ValueError("Snapshot path cannot be empty")
        return v.strip()


class AuthSettings(BaseSettings):
    """Session token settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    token_length: int = Field(default=24, description="Length of generated session tokens")

    @field_validator("token_length")
    @classmethod
    def validate_token_length(cls, v: int) -> int:
        """Validate token length is reasonable."""
        if v < 8:
            raise ValueError(f"Token length must be at least 8, got {v}")
        if v > 128:
            raise ValueError(f"Token length too large (max 128), got {v}")
        return v


class HTTPSettings(BaseSettings):
    """HTTP API settings."""

    model_config = SettingsConfigDict(env_prefix="HTTP_")

    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=8080, description="HTTP port")
    token_header: str = Field(
        default="X-Auth-Token", description="Header carrying the session token"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v


class GoalSettings(BaseSettings):
    """Default thresholds used when a request does not supply one."""

    model_config = SettingsConfigDict(env_prefix="GOALS_")

    water_daily_ml: float = Field(default=1500.0, description="Daily water goal in ml")
    sleep_min_hours: float = Field(default=7.0, description="Minimum nightly sleep in hours")

    @field_validator("water_daily_ml", "sleep_min_hours")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Validate goals are not negative."""
        if v < 0:
            raise ValueError(f"Goal must not be negative, got {v}")
        return v


class AppSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="APP_")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        normalized = v.upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return normalized

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        normalized = v.lower()
        if normalized not in ("json", "console"):
            raise ValueError(f"Invalid log format '{v}'. Must be 'json' or 'console'")
        return normalized


class TracingSettings(BaseSettings):
    """OpenTelemetry tracing settings."""

    model_config = SettingsConfigDict(env_prefix="TRACING_")

    enabled: bool = Field(default=False, description="Enable OTLP trace export")
    service_name: str = Field(default="health-tracker", description="Reported service name")
    endpoint: str | None = Field(
        default=None, description="OTLP/HTTP traces endpoint (default: OTEL_EXPORTER_OTLP_*)"
    )
    sample_ratio: float = Field(default=1.0, description="Fraction of root traces sampled")

    @field_validator("sample_ratio")
    @classmethod
    def validate_sample_ratio(cls, v: float) -> float:
        """Validate the sampling ratio is a fraction."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Sample ratio must be between 0 and 1, got {v}")
        return v


class Settings(BaseSettings):
    """Combined application settings."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    goals: GoalSettings = Field(default_factory=GoalSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    tracing: TracingSettings = Field(default_factory=TracingSettings)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            storage=StorageSettings(),
            auth=AuthSettings(),
            http=HTTPSettings(),
            goals=GoalSettings(),
            app=AppSettings(),
            tracing=TracingSettings(),
        )


# Global settings instance with thread-safe initialization
_settings: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the global settings instance.

    Thread-safe singleton pattern using double-checked locking.
    """
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = Settings.load()
    return _settings
