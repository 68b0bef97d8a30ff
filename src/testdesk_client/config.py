"""Client settings loaded from environment variables."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Where the Resource Store lives and who is calling it."""

    model_config = SettingsConfigDict(env_prefix="TESTDESK_", env_file=".env", extra="ignore")

    api_base_url: str = "http://localhost:8000/api/v1"
    user_id: Optional[str] = None
    client_timeout: float = 30.0


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()
