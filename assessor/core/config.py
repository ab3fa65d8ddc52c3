"""Application configuration from environment."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "AI Assessment System"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = ["*"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./assessor.db"

    # JWT bearer tokens
    secret_key: str = "change-me-in-production-use-env"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 1 day

    # LLM provider
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    llm_temperature: float = 0.7
    llm_structured_output: bool = True  # JSON mode; heuristic extraction still applied

    # Assessment defaults
    default_difficulty: str = "Beginner"
    max_questions: int = 10
    history_limit: int = 50
    question_time_limit_seconds: int = 120

    # Web client session cookie (points at the persisted snapshot)
    session_cookie_name: str = "assessor_session"
    session_cookie_max_age: int = 60 * 60 * 24 * 7  # 7 days


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Package root (templates live next to the routers)
BASE_DIR = Path(__file__).resolve().parent.parent
