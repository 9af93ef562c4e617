"""
Application configuration using Pydantic Settings
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "mascote-api"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # API
    ALLOWED_ORIGINS: list[str] = ["https://omascote.com.br"]

    # Storage
    DATA_DIR: Path = Path("data")

    # JWT
    JWT_SECRET_KEY: str = "jwt-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Quota cycles are calendar months in this timezone
    CYCLE_TIMEZONE: str = "America/Sao_Paulo"

    # Uploads
    MAX_SPONSOR_FILES: int = 20

    # Archive export
    ARCHIVE_COMPRESSION_LEVEL: int = 9
    ARCHIVE_CHUNK_SIZE: int = 64 * 1024

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def clients_file(self) -> Path:
        return self.DATA_DIR / "clients.json"

    @property
    def orders_dir(self) -> Path:
        return self.DATA_DIR / "orders"

    @property
    def teams_dir(self) -> Path:
        return self.DATA_DIR / "teams"

    @property
    def uploads_dir(self) -> Path:
        return self.DATA_DIR / "tmp_uploads"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
