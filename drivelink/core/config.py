"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "DriveLink"
    APP_ENV: Literal["development", "staging", "production"] = "development"

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(
        ...,
        description="Async SQLAlchemy URL (postgresql+asyncpg:// or sqlite+aiosqlite://)",
    )
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # JWT Configuration
    # ================================
    JWT_SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # ================================
    # Password Hashing
    # ================================
    # bcrypt cost factor: 2^rounds iterations. 4 is the minimum bcrypt accepts.
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"


# Global settings instance
settings = Settings()
