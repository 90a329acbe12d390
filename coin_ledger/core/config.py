from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Coin Ledger API"
    database_url: str = "sqlite:///coin_ledger.db"
    log_level: str = "INFO"
    host: str = "localhost"
    port: int = 8080
    transaction_timeout: float = Field(default=5.0, gt=0)
    pool_size: int = Field(default=16, ge=1)
    create_schema: bool = True
    cors_allow_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
