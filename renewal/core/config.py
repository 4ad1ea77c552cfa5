"""Application configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Pix Subscription Renewal API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Security
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours

    # Database
    DATABASE_URL: str

    # MercadoPago
    # The token is checked at startup, not at import, so tooling (alembic,
    # tests) can load settings without gateway credentials.
    MERCADOPAGO_ACCESS_TOKEN: Optional[str] = None
    MERCADOPAGO_BASE_URL: str = "https://api.mercadopago.com"
    MERCADOPAGO_TIMEOUT_SECONDS: float = 5.0
    MERCADOPAGO_WEBHOOK_TYPE: str = "mercadopago"

    # Subscription renewal
    SUBSCRIPTION_EXTENSION_DAYS: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    SUBSCRIPTION_LOG_FILE: str = "error.log"
    WEBHOOK_LOG_FILE: str = "webhook.log"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")


settings = Settings()
