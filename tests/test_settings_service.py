"""User settings, API keys and celebration preferences."""

import pytest

from lesson_app.backend.client import eq
from lesson_app.backend.tables import Table
from lesson_app.core.errors import InvalidInputError
from lesson_app.constants.session_constants import AI_API_KEY_SETTING, TTS_API_KEY_SETTING
from lesson_app.core.services.settings_service import AISettings, CelebrationSettings, TTSSettings


class TestSettingsService:
    def test_defaults_are_created_once(self, services, teacher):
        first = services.settings.get_user_settings(teacher.id)
        services.settings.get_user_settings(teacher.id)
        assert first.tts == TTSSettings()
        assert first.celebration == CelebrationSettings()
        assert len(services.backend.select(Table.USER_SETTINGS, [eq("user_id", teacher.id)])) == 1

    def test_requires_user(self, services):
        with pytest.raises(InvalidInputError):
            services.settings.get_user_settings("")

    def test_update_round_trip(self, services, teacher):
        current = services.settings.get_user_settings(teacher.id)
        current.settings["ui_font_size"] = 14
        current.tts = TTSSettings(enabled=True, voice_id="voice-1", auto_play=True)
        services.settings.update_user_settings(current)

        loaded = services.settings.get_user_settings(teacher.id)
        assert loaded.settings == {"ui_font_size": 14}
        assert loaded.tts.voice_id == "voice-1"
        assert loaded.tts.auto_play is True

    def test_api_key(self, services, teacher):
        assert services.settings.get_api_key(teacher.id) is None
        services.settings.save_api_key(teacher.id, "  key-123 ")
        assert services.settings.get_api_key(teacher.id) == "key-123"
        services.settings.save_api_key(teacher.id, "")
        assert services.settings.get_api_key(teacher.id) is None

    def test_celebration_settings(self, services, teacher):
        services.settings.save_celebration_settings(
            teacher.id, CelebrationSettings(type="custom", phrase="Brilliant!", screen_effect="stars")
        )
        stored = services.backend.select_one(Table.USER_SETTINGS, [eq("user_id", teacher.id)])
        assert stored["celebration_settings"]["effects"]["screen_effect"] == "stars"
        celebration = services.settings.get_celebration_settings(teacher.id)
        assert celebration.phrase == "Brilliant!"

    def test_invalid_celebration(self):
        with pytest.raises(InvalidInputError):
            CelebrationSettings(type="fireworks")
        with pytest.raises(InvalidInputError):
            CelebrationSettings(screen_effect="lasers")


class TestCelebrationResolution:
    def test_default_phrase(self):
        resolved = CelebrationSettings().resolve()
        assert resolved == {"phrase": "Great job! 🎉", "confetti": True, "sound": True, "screen_effect": "gold"}

    def test_custom_phrase(self):
        resolved = CelebrationSettings(type="custom", phrase="Brilliant!", confetti=False).resolve()
        assert resolved["phrase"] == "Brilliant!"
        assert resolved["confetti"] is False

    def test_custom_without_phrase_uses_default(self):
        assert CelebrationSettings(type="custom").resolve()["phrase"] == "Great job! 🎉"

    def test_preset_sets_phrase_and_effect(self):
        resolved = CelebrationSettings(type="preset", preset="genius", screen_effect="none").resolve()
        assert resolved["phrase"] == "Genius Move! 🧠✨"
        assert resolved["screen_effect"] == "rainbow"

    def test_unknown_preset(self):
        with pytest.raises(InvalidInputError):
            CelebrationSettings(type="preset", preset="fireworks")

    def test_preset_is_stored(self, services, teacher):
        services.settings.save_celebration_settings(teacher.id, CelebrationSettings(type="preset", preset="champion"))
        assert services.settings.get_celebration_settings(teacher.id).preset == "champion"


class TestAssistantSettings:
    def test_defaults(self, services, teacher):
        ai = services.settings.get_ai_settings(teacher.id)
        assert ai == AISettings()
        assert ai.enabled is False
        assert ai.endpoint.startswith("https://openrouter.ai/")

    def test_saved_with_the_account(self, services, teacher):
        services.settings.save_ai_settings(
            teacher.id, AISettings(enabled=True, model="anthropic/claude-3-haiku", temperature=0.2)
        )
        row = services.backend.select_one(Table.USER_SETTINGS, [eq("user_id", teacher.id)])
        assert row["ai_settings"]["model"] == "anthropic/claude-3-haiku"
        stored = services.settings.get_ai_settings(teacher.id)
        assert stored.enabled is True
        assert stored.temperature == 0.2

    def test_keys_are_kept_apart(self, services, teacher):
        services.settings.save_api_key(teacher.id, "tts-key")
        services.settings.save_api_key(teacher.id, "or-key", AI_API_KEY_SETTING)
        assert services.settings.get_api_key(teacher.id, TTS_API_KEY_SETTING) == "tts-key"
        assert services.settings.get_api_key(teacher.id, AI_API_KEY_SETTING) == "or-key"

    def test_invalid_values(self):
        with pytest.raises(InvalidInputError):
            AISettings(temperature=3.5)
        with pytest.raises(InvalidInputError):
            AISettings(endpoint="openrouter.ai/api")

    def test_missing_fields_fall_back(self):
        assert AISettings.from_dict({"enabled": True, "model": ""}) == AISettings(enabled=True)
