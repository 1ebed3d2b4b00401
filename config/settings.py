"""
Application configuration: environment-driven settings for the wizard,
the AI collaborator and the HTTP API.
"""

import logging
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT: str = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


class Settings(BaseSettings):
    """Central configuration for Decision AI."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "Decision AI"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── API ──────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api"
    CORS_ORIGINS: list[str] = ["*"]

    # ── AI collaborator ──────────────────────────────────
    LLM_PROVIDER: str = ""  # gemini | openai | anthropic | ollama, blank = auto-detect
    GEMINI_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"),
    )
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    OLLAMA_MODEL: str = ""
    OLLAMA_BASE_URL: str = "http://localhost:11434"

    PLAN_MODEL: str = ""
    ANALYSIS_MODEL: str = ""
    CHAT_MODEL: str = ""
    PLAN_TEMPERATURE: float = 0.1
    ANALYSIS_TEMPERATURE: float = 0.2
    CHAT_TEMPERATURE: float = 0.7
    MAX_OUTPUT_TOKENS: int = 8192

    # ── Data handling ────────────────────────────────────
    PLAN_SAMPLE_LINES: int = 10
    PLAN_SAMPLE_CHARS: int = 2000
    MAX_CSV_CHARS: int = 100_000
    CHAT_CONTEXT_CHARS: int = 4000
    PREVIEW_ROWS: int = 5
    MAX_UPLOAD_MB: int = 50
    ALLOWED_EXTENSIONS: list[str] = [".csv"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return a cached singleton of the application settings.

    Returns:
        Settings: The application configuration instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """Attach the shared stream handler to the root logger once."""
    settings = get_settings()
    if level is None:
        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL
    root = logging.getLogger()
    if not any(getattr(h, "_decision_ai", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._decision_ai = True
        root.addHandler(handler)
    root.setLevel(level.upper())
