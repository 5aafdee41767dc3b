"""
Hygieia Inspections Application Configuration
Loads settings from .env file using Pydantic v2 with BaseSettings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ==================== Project Info ====================
    PROJECT_NAME: str = "Hygieia Inspections API"
    PROJECT_DESCRIPTION: str = "Inspection lifecycle, scoring, corrective actions and sign-offs"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # ==================== Database ====================
    DATABASE_URL: str = "sqlite:///hygieia_local.db"

    # ==================== Security & Authentication ====================
    # Tokens are issued by the external auth service; we only verify them.
    SECRET_KEY: str = "change-this-in-production"
    ALGORITHM: str = "HS256"

    # ==================== Collaborator Services ====================
    # Empty URL = collaborator not configured, lookups are skipped
    FACILITY_SERVICE_URL: str = ""
    USER_SERVICE_URL: str = ""
    CONTRACT_SERVICE_URL: str = ""
    GUIDANCE_SERVICE_URL: str = ""
    COLLABORATOR_TIMEOUT_SECONDS: float = 5.0
    COLLABORATOR_API_TOKEN: Optional[str] = None

    # ==================== Inspections ====================
    INSPECTION_NUMBER_PREFIX: str = "INS"
    # Minimum overall score per rating label. Pending product sign-off.
    RATING_BANDS: Dict[str, int] = {
        "excellent": 90,
        "good": 75,
        "fair": 60,
        "poor": 40,
        "failing": 0,
    }

    # ==================== Features ====================
    DEBUG: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = "INFO"

    # ==================== Database Connection Pool ====================
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_RECYCLE: int = 3600

    # ==================== Pagination ====================
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # ==================== Configuration Loading ====================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra environment variables
        validate_default=True,
    )

    # ==================== Properties ====================
    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite"""
        return self.DATABASE_URL.startswith("sqlite")


# ==================== Settings Singleton ====================
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Create default settings instance
settings = get_settings()

