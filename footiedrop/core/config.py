from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    GIT_SHA: str | None = None

    PG_HOST: str = "localhost"
    PG_PORT: int = 5432
    PG_DB: str = "footiedrop"
    PG_USER: str = "footiedrop"
    PG_PASSWORD: str = ""
    DATABASE_URL: str | None = None   # overrides the PG_* parts when set
    DISABLE_ASYNC_DB_POOL: bool = False

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    SESSION_TTL_DAYS: int = 30

    SMTP_HOST: str = "smtp.example.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TLS: bool = True
    MAIL_FROM: str = "no-reply@footiedrop.com"
    MAIL_FROM_NAME: str = "Footiedrop"

    EMAIL_ENABLED: bool = True
    SMTP_TIMEOUT_SECONDS: int = 10
    # best_effort: log and carry on; strict: fail the request after the store write
    NOTIFY_FAILURE_POLICY: Literal["best_effort", "strict"] = "best_effort"

    OTP_TTL_MINUTES: int = 5
    OTP_RESEND_COOLDOWN_SECONDS: int = 60
    OTP_PURGE_INTERVAL_MINUTES: int = 30
    OTP_ATTEMPT_WINDOW_SECONDS: int = 600
    OTP_MAX_ATTEMPTS: int = 5
    OTP_BLOCK_SECONDS: int = 900

    RESET_TOKEN_TTL_MINUTES: int = 10

    FRONTEND_BASE_URL: str = "http://localhost:3000"

    LOGIN_ATTEMPT_WINDOW_SECONDS: int = 600
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_BLOCK_SECONDS: int = 900

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.PG_USER}:{self.PG_PASSWORD}"
            f"@{self.PG_HOST}:{self.PG_PORT}/{self.PG_DB}"
        )

settings = Settings()
