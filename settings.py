"""
Environment configuration for the LocalChef Bazaar API.

Values come from environment variables (or a local .env file) and are
validated by pydantic-settings.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "LocalChef Bazaar API"
    ENVIRONMENT: str = "development"

    # Database
    MONGODB_URI: str = "mongodb://localhost:27017"
    DB_NAME: str = "localBazarChef"

    # HTTP
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:5173"])
    CLIENT_URL: str = "http://localhost:5173"

    # Identity
    AUTH_PROVIDER: Literal["firebase", "jwt"] = "firebase"
    FB_SERVICE_KEY: Optional[str] = Field(default=None, description="Base64 encoded service account JSON")
    JWT_SECRET_KEY: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # Payments
    STRIPE_SECRET_KEY: Optional[str] = None
    CURRENCY: str = "usd"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
