from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIERED_INTEREST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    store_path: str = Field(default="tiered_interest.db", description="SQLite file backing the key/value store")
    history_limit: int = Field(default=10, ge=1, description="Number of calculations kept in history")
    max_tiers: int = Field(default=10, ge=2, description="Maximum number of tiers in a schedule")
    default_rate: float = Field(default=4.0, ge=0, description="Rate used for new or padded tiers")
    cors_origins: str = Field(default="http://localhost:5173", description="Comma separated CORS origins for /api/*")
    log_level: str = Field(default="INFO", description="Root logging level")

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
