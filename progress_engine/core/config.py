"""
Application configuration and settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Supabase Configuration (remote snapshot service)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    PROGRESS_TABLE: str = "user_progress"

    # Redis Configuration (local snapshot store)
    REDIS_URL: str = "redis://localhost:6379/0"
    SNAPSHOT_KEY_PREFIX: str = "progress"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Progress Engine API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = (
        "XP, levels, weekly leagues and local-first progress sync "
        "for the math practice app."
    )

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = [
        "*"
    ]

    # Time Configuration: calendar days and league weeks are local to this zone
    TIMEZONE: str = "UTC"

    # Sync retry policy
    SYNC_RETRY_BASE_SECONDS: float = 2.0
    SYNC_RETRY_MULTIPLIER: float = 2.0
    SYNC_RETRY_MAX_SECONDS: float = 300.0
    SYNC_RETRY_MAX_ATTEMPTS: int = 8

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
