"""Application configuration using Pydantic Settings."""
from typing import List, Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings (read from environment variables and .env)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = Field("Beat Market")
    ENVIRONMENT: str = Field("development")
    DEBUG: bool = Field(False)
    API_V1_PREFIX: str = Field("/api/v1")
    APP_URL: str = Field("http://localhost:3000")
    LOG_LEVEL: str = Field("INFO")
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Database
    DB_USER: str = Field("beatmarket")
    DB_PASSWORD: str = Field("beatmarket")
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_NAME: str = Field("beatmarket")
    DB_POOL_SIZE: int = Field(5)
    DB_MAX_OVERFLOW: int = Field(10)
    SQLALCHEMY_DATABASE_URI: Optional[str] = Field(None)

    @computed_field
    @property
    def DATABASE_URL(self) -> str:
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # Redis (rate limiting)
    REDIS_URL: Optional[str] = Field(None)
    GUEST_DOWNLOAD_RATE_LIMIT: int = Field(30)
    GUEST_DOWNLOAD_RATE_WINDOW_SECS: int = Field(60)

    # JWT
    JWT_SECRET_KEY: str = Field("change-me")
    JWT_ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24 * 7)

    # AWS / S3
    AWS_ACCESS_KEY_ID: Optional[str] = Field(None)
    AWS_SECRET_ACCESS_KEY: Optional[str] = Field(None)
    S3_BUCKET_NAME: str = Field("beatmarket-files")
    S3_REGION: str = Field("eu-west-3")
    S3_ENDPOINT_URL: Optional[str] = Field(None)
    # Public base for previews and covers (CDN); defaults to the bucket URL
    S3_PUBLIC_BASE_URL: Optional[str] = Field(None)

    # Resend
    RESEND_API_KEY: Optional[str] = Field(None)
    RESEND_FROM_EMAIL: str = Field("orders@beatmarket.dev")

    # Stripe
    STRIPE_SECRET_KEY: str = Field("sk_test_change_me")
    STRIPE_WEBHOOK_SECRET: str = Field("whsec_change_me")
    STRIPE_CURRENCY: str = Field("eur")
    STRIPE_WEBHOOK_TOLERANCE_SECS: int = Field(300)

    # Downloads and licensing
    DOWNLOAD_EXPIRY_DAYS: int = Field(30)
    GUEST_MAX_DOWNLOADS: int = Field(3)
    DOWNLOAD_URL_TTL_SECONDS: int = Field(900)
    DEFAULT_LOCALE: str = Field("en")
    SUPPORTED_LOCALES: List[str] = Field(default_factory=lambda: ["en", "fr"])
    PRODUCER_NAME: str = Field("Beat Market")


settings = Settings()
