"""Environment configuration and logging setup."""

import logging

from lesson_app.constants.network_constants import DEFAULT_PORT
from lesson_app.utils.config import AppSettings
from lesson_app.utils.logging_config import configure_logging


class TestAppSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        settings = AppSettings()
        assert settings.port == DEFAULT_PORT
        assert settings.public_base_url == ""
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("LESSONQT_PORT", "9100")
        monkeypatch.setenv("LESSONQT_PUBLIC_BASE_URL", "http://10.0.0.5:9100/")
        settings = AppSettings()
        assert settings.port == 9100
        assert settings.public_base_url == "http://10.0.0.5:9100/"


class TestConfigureLogging:
    def test_returns_package_logger(self):
        assert configure_logging("debug").name == "lesson_app"

    def test_unknown_level_does_not_fail(self):
        assert isinstance(configure_logging("chatty"), logging.Logger)


class TestStorageAndAssistantSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        settings = AppSettings()
        assert settings.database_url == "sqlite:///./lessonqt.db"
        assert settings.ai_models_url == "https://openrouter.ai/api/v1/models"
        assert settings.ai_timeout_seconds == 60.0

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("LESSONQT_DATABASE_URL", "sqlite:///./classroom.db")
        monkeypatch.setenv("LESSONQT_AI_TIMEOUT_SECONDS", "15")
        settings = AppSettings()
        assert settings.database_url == "sqlite:///./classroom.db"
        assert settings.ai_timeout_seconds == 15.0
