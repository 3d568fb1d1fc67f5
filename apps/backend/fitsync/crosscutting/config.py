"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults that match the documented behavior

Collaborators:
  - api/main.py: reads settings for CORS, health and startup validation
  - container.py: decides between Supabase and in-memory adapters
  - crosscutting/rate_limit.py: window sizes and maxima per policy
  - crosscutting/logger.py: log level, JSON mode and file logging

Constraints:
  - Lives in API/infrastructure layer, NOT in domain/application
  - No business logic, pure configuration

Notes:
  - Singleton via lru_cache; tests call get_settings.cache_clear()
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_env: Runtime mode (development/production/test)
        host: Listen address for `python -m fitsync`
        port: Listen port (default: 5001)
        frontend_url: Comma-separated CORS origins
        admin_code: Code that grants the admin role on signup (empty disables it)
        supabase_url: Supabase project URL
        supabase_service_role_key: Service-role key (admin auth API + table access)
        supabase_anon_key: Public key used for signup/login sessions
        supabase_jwt_secret: Secret used to verify access tokens
        supabase_jwt_audience: Expected `aud` claim of access tokens
        users_table: Name of the custom users table
        fake_baas: Use in-memory auth/profile adapters instead of Supabase
        max_body_bytes: Max request body size (default: 10MB)
        log_to_files: Write access/error logs under log_dir
        log_max_bytes: Size that triggers a log file rotation (default: 10MB)
        slow_request_ms: Threshold for SLOW_REQUEST performance warnings
        expose_error_stack: Include stack traces in error bodies (None => dev only)
        trust_proxy: Take the client IP from X-Forwarded-For
        rate_limit_*: Fixed-window limiter policies
        retry_*: Backoff for idempotent BaaS reads
    """

    # Environment
    app_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 5001

    # CORS
    frontend_url: str = "http://localhost:5173"

    # Signup
    admin_code: str = ""

    # BaaS (Supabase)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    users_table: str = "users"

    # Testing/CI
    fake_baas: bool = False

    # Hardening
    max_body_bytes: int = 10 * 1024 * 1024  # 10MB
    trust_proxy: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = True
    log_to_files: bool = True
    log_dir: str = "logs"
    log_max_bytes: int = 10 * 1024 * 1024  # 10MB
    slow_request_ms: float = 1000.0
    expose_error_stack: bool | None = None

    # Rate limiting (fixed window)
    rate_limit_enabled: bool = True
    rate_limit_max_keys: int = 10_000
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_standard_max: int = 100
    rate_limit_auth_max: int = 5
    rate_limit_strict_window_seconds: int = 60 * 60
    rate_limit_strict_max: int = 10
    rate_limit_user_max: int = 100
    rate_limit_premium_max: int = 500
    rate_limit_admin_max: int = 1000
    rate_limit_anonymous_max: int = 50

    # Retry/Resilience
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 5.0

    @field_validator("app_env")
    @classmethod
    def app_env_normalized(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @field_validator(
        "rate_limit_window_seconds",
        "rate_limit_strict_window_seconds",
        "rate_limit_max_keys",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("log_max_bytes", "max_body_bytes")
    @classmethod
    def sizes_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("size limits must be greater than 0")
        return v

    def get_allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [
            origin.strip()
            for origin in self.frontend_url.split(",")
            if origin.strip()
        ]

    def should_expose_error_stack(self) -> bool:
        if self.expose_error_stack is not None:
            return self.expose_error_stack
        return self.is_development()

    def uses_fake_baas(self) -> bool:
        return self.fake_baas or self.is_test()

    @model_validator(mode="after")
    def validate_baas_requirements(self):
        if not self.is_production() or self.fake_baas:
            return self

        missing = [
            name
            for name, value in (
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_SERVICE_ROLE_KEY", self.supabase_service_role_key),
                ("SUPABASE_JWT_SECRET", self.supabase_jwt_secret),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} must be set in production unless FAKE_BAAS=1"
            )
        if len(self.supabase_jwt_secret.strip()) < 32:
            raise ValueError(
                "SUPABASE_JWT_SECRET must be at least 32 characters in production"
            )
        return self

    def is_production(self) -> bool:
        return self.app_env == "production"

    def is_development(self) -> bool:
        return self.app_env == "development"

    def is_test(self) -> bool:
        return self.app_env in {"test", "testing", "ci"}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()
