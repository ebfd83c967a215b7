"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.03.00"

    # Database
    DATABASE_URL: str = "sqlite+pysqlite:///./smartresponse.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24

    # CORS (public forms are embedded on third-party sites)
    CORS_ORIGINS: str = "*"

    # Public site identity (sent to OpenRouter as referer/title)
    SITE_URL: str = "http://localhost:3000"
    APP_TITLE: str = "Smart Response"

    # AI backends
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    AI_REQUEST_TIMEOUT_SECONDS: float = 60.0
    URL_FETCH_TIMEOUT_SECONDS: float = 15.0
    URL_CONTENT_MAX_CHARS: int = 3000

    # Submissions from this address bypass duplicate checks and lead quotas
    TEST_EMAIL: str = "hello@vasilkov.digital"

    # Knowledge base uploads
    MAX_FILE_SIZE_BYTES: int = 1024 * 1024
    MAX_FILES_PER_FORM: int = 10

    # Notifications
    NOTIFICATION_QUEUE_SIZE: int = 1000
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "hello@vasilkov.digital"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_PUBLIC_SUBMIT: int = 20
    RATE_LIMIT_API: int = 120

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets


settings = Settings()
