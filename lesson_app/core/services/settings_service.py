"""Per-user settings: preferences, API credentials, TTS, celebrations and the assistant."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from lesson_app.backend.client import BackendClient, eq
from lesson_app.backend.tables import Table, UserSettingsRow, utc_now
from lesson_app.constants.session_constants import (
    CELEBRATION_PRESETS,
    DEFAULT_AI_ENDPOINT,
    DEFAULT_AI_MODEL,
    DEFAULT_AI_TEMPERATURE,
    DEFAULT_CELEBRATION_PHRASE,
    DEFAULT_TTS_VOICE_ID,
    TTS_API_KEY_SETTING,
)
from lesson_app.core.errors import BackendError, InvalidInputError

logger = logging.getLogger(__name__)

SCREEN_EFFECTS = ("none", "gold", "stars", "rainbow")


@dataclass(slots=True)
class TTSSettings:
    enabled: bool = False
    voice_id: str = DEFAULT_TTS_VOICE_ID
    auto_play: bool = False
    model_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TTSSettings":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            voice_id=str(data.get("voice_id") or DEFAULT_TTS_VOICE_ID),
            auto_play=bool(data.get("auto_play", False)),
            model_id=data.get("model_id") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class CelebrationSettings:
    """How a correct answer is celebrated on the student page."""

    type: str = "default"
    phrase: str | None = None
    preset: str | None = None
    confetti: bool = True
    sound: bool = True
    screen_effect: str = "gold"

    def __post_init__(self) -> None:
        if self.type not in ("custom", "preset", "default"):
            raise InvalidInputError(f"Unknown celebration type: {self.type}")
        if self.preset is not None and self.preset not in CELEBRATION_PRESETS:
            raise InvalidInputError(f"Unknown celebration preset: {self.preset}")
        if self.screen_effect not in SCREEN_EFFECTS:
            raise InvalidInputError(f"Unknown screen effect: {self.screen_effect}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CelebrationSettings":
        data = data or {}
        effects = data.get("effects") or {}
        return cls(
            type=data.get("type", "default"),
            phrase=data.get("phrase"),
            preset=data.get("preset") or None,
            confetti=bool(effects.get("confetti", True)),
            sound=bool(effects.get("sound", True)),
            screen_effect=effects.get("screen_effect", "gold"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "phrase": self.phrase,
            "preset": self.preset,
            "effects": {
                "confetti": self.confetti,
                "sound": self.sound,
                "screen_effect": self.screen_effect,
            },
        }

    def resolve(self) -> dict[str, Any]:
        """The phrase and effects the student page plays for a correct answer."""

        phrase = DEFAULT_CELEBRATION_PHRASE
        screen_effect = self.screen_effect
        if self.type == "custom" and self.phrase:
            phrase = self.phrase
        elif self.type == "preset" and self.preset:
            phrase, screen_effect = CELEBRATION_PRESETS[self.preset]
        return {
            "phrase": phrase,
            "confetti": self.confetti,
            "sound": self.sound,
            "screen_effect": screen_effect,
        }


@dataclass(slots=True)
class AISettings:
    """Chat-completions endpoint and model used by the classroom assistant."""

    enabled: bool = False
    model: str = DEFAULT_AI_MODEL
    endpoint: str = DEFAULT_AI_ENDPOINT
    temperature: float = DEFAULT_AI_TEMPERATURE

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 2.0:
            raise InvalidInputError(f"Temperature must be between 0 and 2, got {self.temperature}")
        if not self.endpoint.startswith(("http://", "https://")):
            raise InvalidInputError(f"The assistant endpoint must be an http(s) URL: {self.endpoint}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AISettings":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            model=str(data.get("model") or DEFAULT_AI_MODEL),
            endpoint=str(data.get("endpoint") or DEFAULT_AI_ENDPOINT),
            temperature=float(data.get("temperature", DEFAULT_AI_TEMPERATURE)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class UserSettings:
    user_id: str
    settings: dict[str, Any] = field(default_factory=dict)
    tts: TTSSettings = field(default_factory=TTSSettings)
    celebration: CelebrationSettings = field(default_factory=CelebrationSettings)
    ai: AISettings = field(default_factory=AISettings)

    @classmethod
    def from_row(cls, row: UserSettingsRow) -> "UserSettings":
        return cls(
            user_id=row.user_id,
            settings=dict(row.settings),
            tts=TTSSettings.from_dict(row.tts_settings),
            celebration=CelebrationSettings.from_dict(row.celebration_settings),
            ai=AISettings.from_dict(row.ai_settings),
        )


class SettingsService:
    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    def get_user_settings(self, user_id: str) -> UserSettings:
        """Load the user's settings, creating the default record on first use."""

        if not user_id:
            raise InvalidInputError("A user id is required to load settings.")
        logger.info("Loading settings for user %s", user_id)
        try:
            row = self._backend.select_one(Table.USER_SETTINGS, [eq("user_id", user_id)])
            if row is None:
                logger.info("No settings for user %s; creating defaults", user_id)
                row = self._backend.insert(
                    Table.USER_SETTINGS,
                    {
                        "user_id": user_id,
                        "settings": {},
                        "tts_settings": TTSSettings().to_dict(),
                        "celebration_settings": CelebrationSettings().to_dict(),
                        "ai_settings": AISettings().to_dict(),
                    },
                )
        except BackendError:
            logger.exception("Failed to load settings for user %s", user_id)
            raise
        return UserSettings.from_row(UserSettingsRow.model_validate(row))

    def update_user_settings(self, user_settings: UserSettings) -> UserSettings:
        logger.info("Saving settings for user %s", user_settings.user_id)
        try:
            rows = self._backend.upsert(
                Table.USER_SETTINGS,
                [
                    {
                        "user_id": user_settings.user_id,
                        "settings": dict(user_settings.settings),
                        "tts_settings": user_settings.tts.to_dict(),
                        "celebration_settings": user_settings.celebration.to_dict(),
                        "ai_settings": user_settings.ai.to_dict(),
                        "updated_at": utc_now(),
                    }
                ],
                on_conflict=("user_id",),
            )
        except BackendError:
            logger.exception("Failed to save settings for user %s", user_settings.user_id)
            raise
        logger.debug("Stored settings row %s", rows[0]["id"])
        return UserSettings.from_row(UserSettingsRow.model_validate(rows[0]))

    def get_tts_settings(self, user_id: str) -> TTSSettings:
        return self.get_user_settings(user_id).tts

    def save_tts_settings(self, user_id: str, tts: TTSSettings) -> None:
        current = self.get_user_settings(user_id)
        current.tts = tts
        self.update_user_settings(current)

    def get_api_key(self, user_id: str, name: str = TTS_API_KEY_SETTING) -> str | None:
        value = self.get_user_settings(user_id).settings.get(name)
        return value or None

    def save_api_key(self, user_id: str, api_key: str, name: str = TTS_API_KEY_SETTING) -> None:
        current = self.get_user_settings(user_id)
        api_key = api_key.strip()
        if api_key:
            current.settings[name] = api_key
        else:
            current.settings.pop(name, None)
        self.update_user_settings(current)
        logger.info("Updated %s for user %s", name, user_id)

    def get_celebration_settings(self, user_id: str) -> CelebrationSettings:
        return self.get_user_settings(user_id).celebration

    def save_celebration_settings(self, user_id: str, celebration: CelebrationSettings) -> None:
        current = self.get_user_settings(user_id)
        current.celebration = celebration
        self.update_user_settings(current)

    def get_ai_settings(self, user_id: str) -> AISettings:
        return self.get_user_settings(user_id).ai

    def save_ai_settings(self, user_id: str, ai: AISettings) -> None:
        current = self.get_user_settings(user_id)
        current.ai = ai
        self.update_user_settings(current)
