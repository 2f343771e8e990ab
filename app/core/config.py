# app/core/config.py
import os
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
DOTENV = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), ".env")


class Settings(BaseSettings):
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    DATABASE_URL: str = "sqlite:///./portal.db"

    EMAIL_DOMAIN: str = "@vu.edu.pk"
    PASSWORD_MIN_LENGTH: int = 8

    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    OTP_INVALIDATE_PREVIOUS: bool = True
    OTP_SWEEP_INTERVAL_SECONDS: int = 300
    PENDING_USER_TTL_MINUTES: int = 60 * 24

    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None

    ADMIN_EMAIL: Optional[str] = None
    ADMIN_USERNAME: str = "admin"
    ADMIN_FULL_NAME: str = "Admin User"
    ADMIN_PASSWORD: Optional[str] = None

    ALLOWED_HOSTS: List[str] = ["*"]
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=DOTENV,
        env_ignore_empty=True,
        extra="ignore"
    )

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_SERVER and self.SMTP_USER and self.SMTP_PASSWORD)


settings = Settings()
