"""
Configuration management for the portfolio API and its gallery client.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Portfolio Gallery API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Backend API for the portfolio gallery and link list"

    # CORS Configuration
    # The SPA is served from a different origin than the API
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Database Configuration
    # postgresql+asyncpg://... in production, SQLite for local development
    DATABASE_URL: str = "sqlite+aiosqlite:///./portfolio.db"

    # Cloudinary Configuration (image bytes live here, metadata in the database)
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "gallery"

    # Admin secret, bcrypt hashed (see scripts/generate_password_hash.py)
    ADMIN_PASSWORD_HASH: str = ""

    # Upload limit in bytes
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env that aren't defined in Settings
    )


class ClientSettings(BaseSettings):
    """
    Settings for the gallery client (synchronizer + API client).
    Read from PORTFOLIO_* environment variables.
    """

    API_URL: str = "http://localhost:3001/api"
    CACHE_PATH: str = ".portfolio-cache.json"
    CACHE_TTL_SECONDS: float = 5 * 60
    REQUEST_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIO_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
