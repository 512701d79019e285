"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Transport
    default_timeout_seconds: float | None = None

    # Collaborators
    certificate_dir: str = "security_certificates"
    secret_env_prefix: str = "INTEGRATION_SECRET_"

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "INTEGRATION_RUNTIME_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
