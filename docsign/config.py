from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache


# Known weak secrets that must never reach production
WEAK_SECRET_KEYS = {
    "changeme",
    "secret",
    "password",
    "development",
    "development-secret-key-change-in-production",
    "test",
    "docsign",
}

MIN_PRODUCTION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/docsign"
    SQL_ECHO: bool = False

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # Auth
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120

    # CORS / links
    FRONTEND_URL: str = "http://localhost:5173"
    SHARE_LINK_BASE_URL: str | None = None

    # Share links
    SHARE_LINK_EXPIRE_DAYS: int = 7
    SHARE_TOKEN_MAX_ATTEMPTS: int = 3

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Email (Brevo)
    EMAIL_PROVIDER: str = "brevo"
    BREVO_API_KEY: str | None = None
    EMAIL_FROM_ADDRESS: str = "no-reply@docsign.local"
    EMAIL_FROM_NAME: str = "DocSign"

    # Error tracking
    SENTRY_DSN: str | None = None

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool = True
    VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Reject insecure configuration outside development."""
        if self.is_production:
            if self.SECRET_KEY.lower() in WEAK_SECRET_KEYS:
                raise ValueError("SECRET_KEY is a known weak value")
            if len(self.SECRET_KEY) < MIN_PRODUCTION_SECRET_LENGTH:
                raise ValueError(
                    f"SECRET_KEY must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production"
                )
            self.DEBUG = False
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT in ("production", "staging")

    @property
    def sqlalchemy_echo(self) -> bool:
        """SQL echo is only ever enabled for local debugging."""
        return self.SQL_ECHO and not self.is_production

    @property
    def share_link_base_url(self) -> str:
        return (self.SHARE_LINK_BASE_URL or self.FRONTEND_URL).rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
