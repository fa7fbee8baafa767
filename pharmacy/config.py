from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Pharmacy Management Backend"
    ENVIRONMENT: str = "local"
    API_PREFIX: str = "/api"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./pharmacy.db"
    DB_CONFIG_PATH: str = "config.json"
    DB_DRIVER: str = "pymysql"
    DB_BUSY_TIMEOUT_SECONDS: int = 30

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # HTTP
    # ==============================
    CORS_ORIGINS: List[str] = ["*"]

    # ==============================
    # Accounts
    # ==============================
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "password"
    PASSWORD_PBKDF2_ROUNDS: int = 200_000

    # ==============================
    # Inventory
    # ==============================
    LOW_STOCK_THRESHOLD: int = 50


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
