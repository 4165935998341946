from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder signing key used when SECRET_KEY is not set in the environment.
DEFAULT_SECRET_KEY = "fallback_secret"


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables or a `.env` file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    secret_key: str = DEFAULT_SECRET_KEY
    """Key used to sign identity tokens."""

    algorithm: str = "HS256"
    """JWT signing algorithm."""

    access_token_expire_minutes: int = 12 * 60
    """Lifetime of an issued token."""

    data_dir: str = "."
    """Directory holding users.json and tasks.json."""

    host: str = "0.0.0.0"
    port: int = 8000

    cors_origins: List[str] = ["*"]

    debug_endpoints: bool = False
    """Expose the unauthenticated /debug collection dumps. Development only."""


@lru_cache
def get_settings() -> Settings:
    return Settings()
