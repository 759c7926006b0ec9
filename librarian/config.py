"""Конфигурация Librarian."""
from typing import Optional, Set

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Настройки приложения из переменных окружения и .env"""

    # Service
    SERVICE_NAME: str = "librarian"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    TEXT_MODEL: str = "gemini-2.5-flash"
    IMAGE_MODEL: str = "imagen-3.0-generate-002"

    # Timeouts (None = ждём, пока не отвалится сам транспорт)
    TIMEOUT_GENERATION: Optional[float] = None

    # Sessions
    SESSION_TTL_SECONDS: int = 3600
    MAX_SESSIONS: int = 1000

    # Attachments
    MAX_FILE_SIZE_MB: int = 20
    ALLOWED_MIME_TYPES: Set[str] = {
        "image/*",
        "text/plain",
        "text/markdown",
        "text/csv",
        "application/pdf",
        "application/json",
    }

    class Config:
        env_file = ".env"
        case_sensitive = True


config = Settings()
