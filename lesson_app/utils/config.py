"""Deploy-time configuration loaded from ``LESSONQT_*`` environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from lesson_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from lesson_app.constants.session_constants import DEFAULT_AI_MODELS_URL


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LESSONQT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Student server ───────────────────────────────────────────────────────
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    # Address students type into their browser. Blank: derived from the LAN IP.
    public_base_url: str = ""

    # ── Database ─────────────────────────────────────────────────────────────
    # SQLite file by default. "sqlite://" keeps everything in memory.
    database_url: str = "sqlite:///./lessonqt.db"

    # ── Text-to-speech ───────────────────────────────────────────────────────
    tts_api_base_url: str = "https://api.elevenlabs.io"
    tts_timeout_seconds: float = 30.0

    # ── Classroom assistant ──────────────────────────────────────────────────
    ai_models_url: str = DEFAULT_AI_MODELS_URL
    ai_timeout_seconds: float = 60.0

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"


def load_settings() -> AppSettings:
    return AppSettings()
