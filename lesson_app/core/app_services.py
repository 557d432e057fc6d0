"""Wires the backend and the services shared by the console and the server."""

from __future__ import annotations

from dataclasses import dataclass

from lesson_app.backend.client import BackendClient
from lesson_app.core.services.ai_service import AIService
from lesson_app.core.services.image_service import ImageService
from lesson_app.core.services.lesson_service import LessonService
from lesson_app.core.services.session_service import SessionService
from lesson_app.core.services.settings_service import SettingsService
from lesson_app.core.services.tts_service import TTSService
from lesson_app.utils.config import AppSettings


@dataclass(slots=True)
class AppServices:
    backend: BackendClient
    lessons: LessonService
    sessions: SessionService
    settings: SettingsService
    tts: TTSService
    images: ImageService
    ai: AIService


def build_services(backend: BackendClient, app_settings: AppSettings | None = None) -> AppServices:
    app_settings = app_settings or AppSettings()
    settings_service = SettingsService(backend)
    lessons = LessonService(backend)
    sessions = SessionService(backend)
    return AppServices(
        backend=backend,
        lessons=lessons,
        sessions=sessions,
        settings=settings_service,
        tts=TTSService(
            settings_service,
            api_base_url=app_settings.tts_api_base_url,
            timeout_seconds=app_settings.tts_timeout_seconds,
        ),
        images=ImageService(backend),
        ai=AIService(
            backend,
            settings_service,
            sessions,
            lessons,
            models_url=app_settings.ai_models_url,
            timeout_seconds=app_settings.ai_timeout_seconds,
        ),
    )
