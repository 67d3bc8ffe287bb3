"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_HOSTS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Tenancy Directory (users, households, role links, audit trail)
    DIRECTORY_DATABASE_URL: str = "sqlite:///data/hearth.db"

    # Tenant stores: one SQLite file per household lives in this directory
    TENANT_DATA_DIR: str = "data"

    # 256-bit master key file, generated on first start if absent
    MASTER_KEY_PATH: str = "data/.master.key"

    # JWT Configuration
    JWT_SECRET_KEY: str = "your-jwt-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Monitoring
    SLOW_QUERY_THRESHOLD_MS: int = 100
    ACTIVITY_WINDOW_DAYS: int = 30

    # Background maintenance
    REDIS_URL: str = "redis://localhost:6379"
    BACKUP_DIR: str = "backups"
    BACKUP_RETENTION_DAYS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()

_DEV_DEFAULTS = {
    "JWT_SECRET_KEY": "your-jwt-secret-key-change-in-production",
}


def validate_production_settings(config: Settings) -> None:
    """
    Refuse to run in production with development defaults
    """
    if config.ENVIRONMENT != "production":
        return

    missing_settings = []
    for setting, default in _DEV_DEFAULTS.items():
        value = getattr(config, setting)
        if not value or value == default:
            missing_settings.append(setting)

    if missing_settings:
        raise ValueError(f"Missing required production settings: {', '.join(missing_settings)}")


def normalize_database_url(url: str) -> str:
    """Database URL for SQLAlchemy"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


# Validate required settings in production
validate_production_settings(settings)
