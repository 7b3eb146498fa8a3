from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Database
    DB_USER: str = Field("hostcall_admin")
    DB_PASSWORD: str = Field("HostCallPass2024")
    DB_NAME: str = Field("hostcall")
    DB_HOST: str = Field("postgres")
    DB_PORT: int = Field(5432)
    # Full SQLAlchemy URL, overrides the DB_* fields (e.g. sqlite+aiosqlite for dev)
    DATABASE_URL: Optional[str] = Field(None)

    # Redis
    REDIS_HOST: str = Field("redis")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: str | None = Field(None)
    REDIS_ENABLED: bool = Field(True)

    # Realtime transport credentials
    RTC_APP_ID: str | None = Field(None)
    RTC_APP_CERTIFICATE: str | None = Field(None)

    # App
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(8000)
    DEBUG: bool = Field(False)
    JWT_SECRET_KEY: str = Field("supersecret")
    JWT_ALGORITHM: str = Field("HS256")
    JWT_EXP_DAYS: int = Field(7)

    # Background work
    BACKGROUND_TASKS_ENABLED: bool = Field(True)
    METRICS_ENABLED: bool = Field(False)
    METRICS_PORT: int = Field(8001)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def sync_database_url(self) -> str:
        """Driver URL for Alembic, which runs migrations synchronously."""
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+aiosqlite", "").replace("+asyncpg", "+psycopg2")
        return (
            f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
