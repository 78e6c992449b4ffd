from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

from pydantic import AnyUrl, Field
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_env: str = Field(default="development", alias="APP_ENV")
    frontend_url: AnyUrl = Field(alias="FRONTEND_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Supabase
    supabase_url: AnyUrl = Field(alias="SUPABASE_URL")
    supabase_anon_key: str = Field(alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: str = Field(alias="SUPABASE_SERVICE_ROLE_KEY")

    # Observability
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")
    sentry_traces_sample_rate: float = Field(
        default=0.0, alias="SENTRY_TRACES_SAMPLE_RATE"
    )

    # Streaks / sessions
    streak_min_minutes: int = Field(default=15, alias="STREAK_MIN_MINUTES")
    session_history_limit: int = Field(default=5000, alias="SESSION_HISTORY_LIMIT")
    max_session_minutes: int = Field(default=1440, alias="MAX_SESSION_MINUTES")

    # Limits
    requests_per_minute: int = Field(default=240, alias="REQUESTS_PER_MINUTE")

    @model_validator(mode="after")
    def validate_runtime_constraints(self) -> "Settings":
        is_prod = self.is_production()

        frontend_origin = urlparse(str(self.frontend_url))
        frontend_host = (frontend_origin.hostname or "").lower()
        if is_prod and frontend_host in {"localhost", "127.0.0.1"}:
            raise ValueError(
                "Invalid FRONTEND_URL for production: localhost is not allowed. "
                "Set FRONTEND_URL to your public web domain."
            )

        supabase_origin = urlparse(str(self.supabase_url))
        supabase_host = (supabase_origin.hostname or "").lower()
        if is_prod and supabase_host in {"localhost", "127.0.0.1"}:
            raise ValueError(
                "Invalid SUPABASE_URL for production: localhost is not allowed."
            )

        if self.streak_min_minutes < 1:
            raise ValueError("STREAK_MIN_MINUTES must be >= 1")
        if not (1 <= self.session_history_limit <= 20000):
            raise ValueError("SESSION_HISTORY_LIMIT must be 1..20000")
        if not (1 <= self.max_session_minutes <= 1440):
            raise ValueError("MAX_SESSION_MINUTES must be 1..1440")

        return self

    def is_production(self) -> bool:
        return (self.app_env or "").strip().lower() in {"production", "prod"}


settings = Settings()  # type: ignore[call-arg]  # singleton import via env settings
