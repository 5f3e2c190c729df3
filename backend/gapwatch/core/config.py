"""Application configuration.

Environment variables are loaded from .env file and can be overridden.
All settings have sensible defaults for local development.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _valkey_alias(env_name: str) -> AliasChoices:
    """Support both VALKEY_* and REDIS_* env var names for compatibility."""
    redis_name = env_name.replace("VALKEY_", "REDIS_")
    return AliasChoices(redis_name, env_name)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # Infrastructure
    # ==========================================================================

    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment: 'development', 'staging', or 'production'.",
    )

    valkey_url: str = Field(
        default="valkey://localhost:6379/0",
        validation_alias=_valkey_alias("VALKEY_URL"),
    )

    # ==========================================================================
    # Browser sessions
    # ==========================================================================

    session_cookie_name: str = Field(
        default="gapwatch_session", alias="SESSION_COOKIE_NAME", min_length=1
    )
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")
    # Idle lifetime of a persisted search state. The cookie itself carries no
    # max-age, so the browser drops it when the session ends.
    session_ttl_seconds: int = Field(default=86400, alias="SESSION_TTL_SECONDS", gt=0)
    session_registry_max_size: int = Field(
        default=10000, alias="SESSION_REGISTRY_MAX_SIZE", ge=1
    )
    valkey_cooldown_seconds: float = Field(
        default=2.0, alias="VALKEY_COOLDOWN_SECONDS", ge=0.0
    )

    # ==========================================================================
    # Upstream Open Bus APIs
    # ==========================================================================

    gaps_api_base_url: str = Field(
        default="https://open-bus-backend.k8s.hasadna.org.il",
        alias="GAPS_API_BASE_URL",
    )
    stride_api_base_url: str = Field(
        default="https://open-bus-stride-api.hasadna.org.il",
        alias="STRIDE_API_BASE_URL",
    )
    upstream_timeout_seconds: float = Field(
        default=30.0, alias="UPSTREAM_TIMEOUT_SECONDS", gt=0.0
    )
    routes_list_limit: int = Field(
        default=100, alias="ROUTES_LIST_LIMIT", ge=1, le=1000
    )

    # ==========================================================================
    # Gap analysis
    # ==========================================================================

    display_timezone: str = Field(default="Asia/Jerusalem", alias="DISPLAY_TIMEZONE")
    gaps_default_lookback_days: int = Field(
        default=7, alias="GAPS_DEFAULT_LOOKBACK_DAYS", ge=1, le=90
    )

    # ==========================================================================
    # CORS
    # ==========================================================================

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_origin_regex: str | None = Field(
        default=None, alias="CORS_ALLOW_ORIGIN_REGEX"
    )

    # ==========================================================================
    # OpenTelemetry (optional)
    # ==========================================================================

    otel_enabled: bool = Field(default=False, alias="OTEL_ENABLED")
    otel_service_name: str = Field(default="gapwatch-backend", alias="OTEL_SERVICE_NAME")
    otel_service_version: str = Field(default="0.1.0", alias="OTEL_SERVICE_VERSION")
    otel_exporter_otlp_endpoint: str = Field(
        default="http://jaeger:4317", alias="OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    otel_exporter_otlp_headers: str | None = Field(
        default=None, alias="OTEL_EXPORTER_OTLP_HEADERS"
    )

    # ==========================================================================
    # Pydantic Settings Config
    # ==========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: Any) -> list[str]:
        """Parse comma-separated CORS origins, rejecting wildcard '*'."""
        if isinstance(value, str):
            if not value:
                return []
            parsed = [item.strip() for item in value.split(",") if item.strip()]
        else:
            parsed = list(value) if value is not None else []

        if "*" in parsed:
            raise ValueError(
                "Wildcard CORS origin '*' is not allowed. "
                "Specify explicit origins like 'http://localhost:3000'."
            )
        return parsed

    @field_validator("gaps_api_base_url", "stride_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize upstream base URLs so paths can be appended verbatim."""
        if not value.startswith(("http://", "https://")):
            raise ValueError("Upstream API base URL must be http(s)")
        return value.rstrip("/")

    @field_validator("display_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject unknown IANA zone names at startup rather than per request."""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @model_validator(mode="after")
    def validate_production_security(self) -> "Settings":
        """Validate security-sensitive settings in production environment."""
        if self.environment.lower() == "production" and not self.session_cookie_secure:
            raise ValueError(
                "Insecure session cookie in production. "
                "Set SESSION_COOKIE_SECURE=true."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
