"""Configuration management using Pydantic settings.

Two-layer configuration system:
1. Environment: Loads raw values from environment variables (UPPER_CASE)
2. Settings: Clean application settings with lowercase fields and derived values
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from obsidian_metrics.schemas.metric_options import METRIC_NAME_RE

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

HEALTH_PATH = "/health"


class Environment(BaseSettings):
    """Raw environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Server ─────────────────────────────────────────────────────────

    FLASK_ENV: str = Field(default="development")
    DEBUG: bool = Field(default=True)
    HOST: str = Field(default="127.0.0.1")
    PORT: int = Field(default=9090)
    METRICS_PATH: str = Field(default="/metrics")
    METRICS_SERVER_ENABLED: bool = Field(default=True)
    CORS_ORIGINS: list[str] = Field(default=["*"])
    WAITRESS_THREADS: int = Field(default=4)
    GRACEFUL_SHUTDOWN_TIMEOUT: int = Field(default=30)

    # ── Metrics ────────────────────────────────────────────────────────

    METRICS_PREFIX: str = Field(default="obsidian_")
    METRICS_DEFAULT_LABELS: dict[str, str] = Field(default_factory=dict)
    METRICS_UPDATE_INTERVAL: int = Field(default=30)
    ENABLE_BUILTIN_METRICS: bool = Field(default=True)
    VAULT_PATH: str | None = Field(default=None)


class Settings(BaseModel):
    """Application settings with lowercase fields and derived values."""

    model_config = ConfigDict(from_attributes=True)

    # ── Server ─────────────────────────────────────────────────────────

    flask_env: str = "development"
    debug: bool = True
    host: str = "127.0.0.1"
    port: int = 9090
    metrics_path: str = "/metrics"
    metrics_server_enabled: bool = True
    cors_origins: list[str] = Field(default=["*"])
    waitress_threads: int = 4
    graceful_shutdown_timeout: int = 30

    # ── Metrics ────────────────────────────────────────────────────────

    metrics_prefix: str = "obsidian_"
    metrics_default_labels: dict[str, str] = Field(default_factory=dict)
    metrics_update_interval: int = 30
    enable_builtin_metrics: bool = True
    vault_path: str | None = None

    @property
    def is_testing(self) -> bool:
        return self.flask_env == "testing"

    @property
    def is_production(self) -> bool:
        return self.flask_env == "production"

    def validate_config(self) -> None:
        from obsidian_metrics.exceptions import ConfigurationError

        errors: list[str] = []

        if not 1 <= self.port <= 65535:
            errors.append(f"PORT must be between 1 and 65535, got {self.port}")

        if not self.metrics_path.startswith("/"):
            errors.append("METRICS_PATH must start with '/'")
        elif self.metrics_path.rstrip("/") == HEALTH_PATH:
            errors.append(f"METRICS_PATH must not be {HEALTH_PATH}")

        if self.metrics_prefix and not METRIC_NAME_RE.match(self.metrics_prefix):
            errors.append(
                f"METRICS_PREFIX {self.metrics_prefix!r} is not a valid metric name prefix"
            )

        if self.metrics_update_interval <= 0:
            errors.append("METRICS_UPDATE_INTERVAL must be positive")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            )

    @classmethod
    def load(cls, env: "Environment | None" = None) -> "Settings":
        if env is None:
            env = Environment()

        metrics_path = env.METRICS_PATH
        if not metrics_path.startswith("/"):
            metrics_path = "/" + metrics_path

        return cls(
            # Server
            flask_env=env.FLASK_ENV,
            debug=env.DEBUG,
            host=env.HOST,
            port=env.PORT,
            metrics_path=metrics_path,
            metrics_server_enabled=env.METRICS_SERVER_ENABLED,
            cors_origins=env.CORS_ORIGINS,
            waitress_threads=env.WAITRESS_THREADS,
            graceful_shutdown_timeout=env.GRACEFUL_SHUTDOWN_TIMEOUT,

            # Metrics
            metrics_prefix=env.METRICS_PREFIX,
            metrics_default_labels=env.METRICS_DEFAULT_LABELS,
            metrics_update_interval=env.METRICS_UPDATE_INTERVAL,
            enable_builtin_metrics=env.ENABLE_BUILTIN_METRICS,
            vault_path=env.VAULT_PATH or None,
        )
