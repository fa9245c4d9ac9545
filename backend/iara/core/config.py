# iara/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import json
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "IARA"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str

    # JWT Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    APPROVAL_LINK_EXPIRE_HOURS: int = 72

    # Fernet key for provider API keys saved in ai_settings.
    # Leave blank to derive one from JWT_SECRET_KEY.
    SECRETS_ENCRYPTION_KEY: str = ""

    # Object storage (S3 or any S3-compatible endpoint)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    S3_BUCKET_NAME: str = "iara-case-files"
    S3_ENDPOINT_URL: str = ""
    STORAGE_PUBLIC_BASE_URL: str = ""

    # Upload / extraction limits
    CASE_ATTACHMENT_MAX_BYTES: int = 50 * 1024 * 1024
    EXTRACTION_MAX_BYTES: int = 10 * 1024 * 1024
    EXTRACTION_USE_LIBRARIES: bool = True
    EXTRACTION_OCR_LANG: str = "por+eng"

    # AI providers
    ANTHROPIC_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    DEEPSEEK_API_KEY: str = ""
    OPENROUTER_API_KEY: str = ""
    GROQ_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-3-sonnet-20240229"
    OPENAI_MODEL: str = "gpt-4-turbo-preview"
    DEEPSEEK_MODEL: str = "deepseek-chat"
    OPENROUTER_MODEL: str = "openai/gpt-4o-mini"
    GROQ_MODEL: str = "llama-3.1-70b-versatile"
    AI_PROVIDER_ORDER: str = "anthropic,openai,deepseek,openrouter,groq"
    AI_TEMPERATURE: float = 0.3
    AI_MAX_TOKENS: int = 4000
    AI_REQUEST_TIMEOUT_SECONDS: float = 60.0
    AI_FALLBACK_ON_PROVIDER_FAILURE: bool = False
    OPENROUTER_REFERER: str = "https://iara.app"

    # Email notifications
    EMAIL_PROVIDER: str = "dev"  # dev | resend
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "IARA System <onboarding@resend.dev>"
    ADMIN_NOTIFICATION_EMAIL: str = "admin@iara.com"

    # CORS
    CORS_ORIGINS: str = '["http://localhost:3000"]'

    @field_validator("AI_PROVIDER_ORDER", "EMAIL_PROVIDER", mode="before")
    @classmethod
    def strip_lower(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from string to list"""
        try:
            if isinstance(self.CORS_ORIGINS, str):
                return json.loads(self.CORS_ORIGINS)
            return self.CORS_ORIGINS
        except json.JSONDecodeError:
            return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def ai_provider_order_list(self) -> List[str]:
        return [p.strip() for p in (self.AI_PROVIDER_ORDER or "").split(",") if p.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Create settings instance
settings = Settings()
