"""Application settings and configuration."""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.cors_config import CORSConfiguration, CORSConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "Taskboard API"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str  # development, staging, production

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_echo: bool = False

    # API
    api_prefix: str = "/api"

    # CORS Configuration (environment-aware)
    cors_allow_origins: str | None = None
    cors_allow_origin_regex: str | None = None
    cors_max_age: int = 600

    # Tokens (one secret per token kind)
    access_token_secret: str
    refresh_token_secret: str
    reset_password_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    reset_token_expire_minutes: int = 60

    # Password hashing (bcrypt cost factor)
    password_hash_rounds: int = 10

    # Refresh cookie
    refresh_cookie_name: str = "refreshToken"
    refresh_cookie_path: str | None = None  # defaults to api_prefix

    # Password reset mail
    frontend_url: str = "http://localhost:5173"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    mail_from: str = "no-reply@taskboard.local"

    # Real-time events
    event_buffer_size: int = 100

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"
    rate_limit_auth: str = "10/minute"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @field_validator("access_token_secret", "refresh_token_secret", "reset_password_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        """Reject empty signing secrets."""
        if not v or not v.strip():
            raise ValueError("Token secrets must not be empty")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_path(self) -> str:
        """Path the refresh cookie is scoped to, used for both set and delete."""
        return self.refresh_cookie_path or self.api_prefix or "/"

    def get_cors_configuration(self) -> CORSConfiguration:
        """Get CORS configuration based on environment settings.

        Raises:
            CORSConfigurationError: If CORS configuration is invalid or insecure.

        """
        try:
            return CORSConfiguration.for_environment(
                self.environment,
                allow_origins=self.cors_allow_origins,
                allow_origin_regex=self.cors_allow_origin_regex,
                max_age=self.cors_max_age,
            )
        except CORSConfigurationError as exc:
            logger.error(f"Failed to create CORS configuration: {exc}")
            raise


settings = Settings()  # type: ignore[call-arg]
