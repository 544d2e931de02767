"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() != "TRACE":
            self.log_level = "DEBUG"

    # Database
    database_url: str
    db_timeout_seconds: int = 5

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    token_issuer: str = "medbox"

    # Login lockout
    max_login_attempts: int = 5
    lockout_minutes: int = 15

    # Tokens minted before roles were embedded carry no role claim
    allow_legacy_role_claim: bool = True

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
