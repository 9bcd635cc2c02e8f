from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "FriendFeed Timeline API"
    VERSION: str = "0.1.0"

    # Database
    DATABASE_URL: str = "sqlite:///./friendfeed.db"

    # Cache coordinator
    CACHE_TTL_SECONDS: float = 60.0
    CACHE_MAX_ENTRIES: int = 4096

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    class Config:
        env_prefix = "FRIENDFEED_"
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
