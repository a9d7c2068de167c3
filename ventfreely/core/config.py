from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import Optional, Any


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Ventfreely"
    ENVIRONMENT: str = "development"  # development, production, test
    ALLOWED_ORIGINS: str = "*"
    APP_TIMEZONE: str = "Europe/Tallinn"

    # Database
    # DATABASE_URL is the session-scoped store. SERVICE_DATABASE_URL is the
    # elevated one used for provisioning writes and webhook ingestion.
    DATABASE_URL: str
    POSTGRES_URL: Optional[str] = None
    SERVICE_DATABASE_URL: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def check_database_url(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if not data.get("DATABASE_URL") and data.get("POSTGRES_URL"):
                data["DATABASE_URL"] = data.get("POSTGRES_URL")
        return data

    @field_validator("DATABASE_URL", "SERVICE_DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @property
    def service_database_url(self) -> str:
        return self.SERVICE_DATABASE_URL or self.DATABASE_URL

    # Auth (tokens are issued by the identity provider, we only verify them)
    AUTH_JWT_SECRET: str
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: Optional[str] = "authenticated"

    # AI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4.1-mini"
    OPENAI_FALLBACK_MODEL: str = "gpt-4o-mini"

    # Billing
    SHOPIFY_WEBHOOK_SECRET: Optional[str] = None
    PREMIUM_DAYS_PER_PAYMENT: int = 14

    # Rate limiting
    RATELIMIT_ENABLED: bool = True
    CHAT_RATE_LIMIT: str = "20/minute"

    # Monitoring (Sentry)
    SENTRY_DSN: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

if not settings.OPENAI_API_KEY:
    import logging
    logging.getLogger(__name__).warning(
        "OPENAI_API_KEY is missing. Chat replies will run in simulated mode."
    )
