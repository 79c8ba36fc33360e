# supportdesk/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./supportdesk.db")
    APP_NAME: str = "Support Desk"
    APP_DESC: str = "Role-scoped support tickets and reply threads"
    APP_VERSION: str = "1.0.0"

    # CORS origins, comma separated
    CORS_ORIGINS: str | None = None

    # Ticket replies
    MAX_REPLY_LENGTH: int = Field(default=5000, gt=0)
    REPLY_CONFLICT_RETRIES: int = Field(default=3, ge=0)

    # Sessions expire instead of relying on client-side logout timers
    SESSION_TTL_MINUTES: int = Field(default=720, gt=0)

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # console | json

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
