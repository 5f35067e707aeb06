"""
Application configuration using Pydantic Settings.

Centralizes all environment variables and app settings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    All sensitive/configurable values should live here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars not defined here
    )

    # Application
    app_name: str = "Gratias Sites API"
    environment: str = "development"
    log_level: str = "INFO"

    # MongoDB - Motor (async driver) connection string
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("mongodb_url", "mongodb_uri"),
    )
    mongodb_database: str = "gratias"
    mongodb_server_selection_timeout_ms: int = 5000

    # Firebase - service account file; Application Default Credentials when unset
    google_application_credentials: Optional[str] = None
    firebase_project_id: Optional[str] = None

    # Sites
    public_api_key_prefix: str = Field(
        default="gratias_public_",
        validation_alias=AliasChoices("public_api_key_prefix", "gratias_public_prefix"),
    )
    default_plan: str = "free"
    default_max_sites: int = 2

    # Custom claims are size-limited by the identity provider
    max_claim_messages: int = 20

    # CORS - comma-separated list, "*" for any origin
    cors_allowed_origins: str = "*"

    @field_validator("google_application_credentials", "firebase_project_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return v
        return v.strip() or None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.
    Using lru_cache avoids re-reading .env on every request.
    """
    return Settings()
