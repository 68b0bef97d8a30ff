"""Application settings loaded from environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Resource Store settings.

    Every field can be overridden with a ``TESTDESK_``-prefixed environment
    variable or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(env_prefix="TESTDESK_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./testdesk.db"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
