from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loan service configuration, read from ``LOANS_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="LOANS_", env_file=".env")

    database_url: str = "sqlite:///database.db"
    database_echo: bool = False
    # drop the SQLite file on start-up
    reset_database: bool = False

    log_level: str = "INFO"
    log_format: str = "standard"  # standard or json


@lru_cache
def get_settings() -> Settings:
    return Settings()
