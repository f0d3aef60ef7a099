"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # HealthMate API (authentication and messaging endpoints)
    API_URL: str = "http://localhost:5000/api"
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Form sessions (in-memory, one per mounted form)
    FORM_SESSION_TTL_SECONDS: int = 1800
    MAX_FORM_SESSIONS: int = 1000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
