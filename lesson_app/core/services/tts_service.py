"""Text-to-speech through an ElevenLabs-compatible HTTP API."""

from __future__ import annotations

import logging

import requests

from lesson_app.constants.session_constants import DEFAULT_TTS_MODEL_ID
from lesson_app.core.errors import BackendError
from lesson_app.core.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.75}


class TTSService:
    """Turns slide text into MP3 audio for the teacher's read-aloud button."""

    def __init__(
        self,
        settings_service: SettingsService,
        *,
        api_base_url: str = "https://api.elevenlabs.io",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._settings_service = settings_service
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def text_to_speech(self, text: str, user_id: str) -> bytes | None:
        """Return MP3 bytes, or ``None`` when TTS is off, unconfigured or failing."""

        text = text.strip()
        if not text:
            return None
        try:
            tts = self._settings_service.get_tts_settings(user_id)
            api_key = self._settings_service.get_api_key(user_id)
        except BackendError:
            logger.exception("Could not load TTS settings for user %s", user_id)
            return None

        if not tts.enabled:
            logger.info("Text-to-speech is disabled for user %s", user_id)
            return None
        if not api_key:
            logger.warning("No text-to-speech API key configured for user %s", user_id)
            return None

        url = f"{self._api_base_url}/v1/text-to-speech/{tts.voice_id}/stream"
        try:
            response = requests.post(
                url,
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": api_key,
                },
                json={
                    "text": text,
                    "model_id": tts.model_id or DEFAULT_TTS_MODEL_ID,
                    "voice_settings": VOICE_SETTINGS,
                },
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Text-to-speech request failed: %s", exc)
            return None
        return response.content
