"""
Configuration module for environment variables.
"""
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = Field(
        default="sqlite:///./teamtask.db",
        description="SQLAlchemy database URL (PostgreSQL in production)"
    )

    # Application Settings
    app_env: str = Field(
        default="development",
        description="development, production or test"
    )
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of origins allowed to send credentialed requests"
    )

    # Password hashing
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt work factor (log2 rounds)"
    )

    # Sessions
    session_cookie_name: str = Field(default="team_task_sid")
    session_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        gt=0,
        description="Idle lifetime of a session; every authenticated request extends it"
    )
    session_cookie_samesite: Optional[str] = Field(
        default=None,
        description="Override for the SameSite cookie attribute (lax, strict or none)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def cookie_samesite(self) -> str:
        if self.session_cookie_samesite:
            return self.session_cookie_samesite.lower()
        # The SPA is served from another site in production
        return "none" if self.is_production else "lax"

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip().rstrip("/") for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Convenience function for direct access
settings = get_settings()
