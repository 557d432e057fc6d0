"""Classroom assistant through an OpenRouter-compatible chat-completions API.

Students chat about the slide they are on. Requests are billed to the
presenting teacher: the teacher's assistant settings and API key are used,
and every exchange is kept per session, slide and student.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import requests

from lesson_app.backend.client import BackendClient, eq
from lesson_app.backend.tables import ChatMessageRow, Table
from lesson_app.constants.about import APP_NAME
from lesson_app.constants.session_constants import (
    AI_API_KEY_SETTING,
    AI_MAX_HISTORY_MESSAGES,
    AI_SYSTEM_PROMPT,
    DEFAULT_AI_MODELS_URL,
)
from lesson_app.core.errors import (
    AIServiceError,
    BackendError,
    InvalidInputError,
    NotFoundError,
    NotParticipantError,
    SessionPausedError,
)
from lesson_app.core.models import slide_plain_text
from lesson_app.core.navigation import accepts_answers
from lesson_app.core.services.lesson_service import LessonService
from lesson_app.core.services.session_service import SessionService
from lesson_app.core.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

CHAT_ROLES = ("user", "assistant")


def extract_reply(data: Any) -> str | None:
    """Pull the reply text out of a chat-completions style response body."""

    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        choice = choices[0]
        message = choice.get("message") or {}
        content = message.get("content")
        if isinstance(content, list):
            # Multi-part content: the first non-empty text part.
            content = next(
                (
                    item.get("text")
                    for item in content
                    if isinstance(item, dict) and item.get("type") == "text" and item.get("text")
                ),
                None,
            )
        if not content:
            content = (choice.get("delta") or {}).get("content") or choice.get("text")
        if content:
            return str(content)
    for key in ("response", "output"):
        if isinstance(data.get(key), str) and data[key]:
            return data[key]
    return None


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return f"API request failed with status {response.status_code}"


class AIService:
    """Chat completions, model listing and per-slide chat history."""

    def __init__(
        self,
        backend: BackendClient,
        settings_service: SettingsService,
        sessions: SessionService,
        lessons: LessonService,
        *,
        models_url: str = DEFAULT_AI_MODELS_URL,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._backend = backend
        self._settings_service = settings_service
        self._sessions = sessions
        self._lessons = lessons
        self._models_url = models_url
        self._timeout_seconds = timeout_seconds

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "X-Title": APP_NAME,
        }

    def _credentials(self, user_id: str) -> str:
        api_key = self._settings_service.get_api_key(user_id, AI_API_KEY_SETTING)
        if not api_key:
            logger.warning("No assistant API key configured for user %s", user_id)
            raise AIServiceError("No assistant API key is configured. Add one in Settings.")
        return api_key

    def send_chat_completion(self, user_id: str, messages: Sequence[dict[str, Any]]) -> str:
        """Send ``messages`` with the settings and key of ``user_id`` and return the reply."""

        if not messages:
            raise InvalidInputError("At least one message is required.")
        ai = self._settings_service.get_ai_settings(user_id)
        if not ai.enabled:
            raise AIServiceError("The classroom assistant is turned off.")
        api_key = self._credentials(user_id)

        logger.info("Sending %d messages to %s (%s)", len(messages), ai.endpoint, ai.model)
        try:
            response = requests.post(
                ai.endpoint,
                headers=self._headers(api_key),
                json={"model": ai.model, "messages": list(messages), "temperature": ai.temperature},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error("Assistant request failed: %s", exc)
            raise AIServiceError("Unable to reach the assistant. Try again later.") from exc

        if not response.ok:
            detail = _error_detail(response)
            logger.error("Assistant request rejected: %s", detail)
            raise AIServiceError(detail)
        try:
            data = response.json()
        except ValueError as exc:
            raise AIServiceError("The assistant sent a response that is not JSON.") from exc
        if isinstance(data, dict) and data.get("error"):
            detail = _error_detail(response)
            logger.error("Assistant returned an error: %s", detail)
            raise AIServiceError(detail)

        reply = extract_reply(data)
        if reply is None:
            logger.error("No reply text in assistant response: %r", data)
            raise AIServiceError("No valid content found in the assistant's response.")
        return reply

    def fetch_available_models(self, user_id: str) -> list[dict[str, Any]] | None:
        """Models offered by the provider, or ``None`` when they cannot be listed."""

        try:
            api_key = self._credentials(user_id)
        except (AIServiceError, BackendError) as exc:
            logger.warning("Cannot list assistant models: %s", exc)
            return None
        try:
            response = requests.get(
                self._models_url, headers=self._headers(api_key), timeout=self._timeout_seconds
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Failed to fetch assistant models: %s", exc)
            return None

        models = []
        for entry in payload.get("data", []) if isinstance(payload, dict) else []:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            model_id = str(entry["id"])
            models.append(
                {
                    "id": model_id,
                    "name": entry.get("name") or model_id.split("/")[-1],
                    "context_length": entry.get("context_length"),
                }
            )
        return models

    # -- chat history ----------------------------------------------------------

    def save_chat_message(
        self, session_id: str, slide_id: str, user_id: str, role: str, content: str
    ) -> ChatMessageRow:
        if role not in CHAT_ROLES:
            raise InvalidInputError(f"Unknown chat role: {role}")
        try:
            row = self._backend.insert(
                Table.CHAT_MESSAGES,
                {
                    "session_id": session_id,
                    "slide_id": slide_id,
                    "user_id": user_id,
                    "role": role,
                    "content": content,
                },
            )
        except BackendError:
            logger.exception("Failed to store chat message of user %s", user_id)
            raise
        return ChatMessageRow.model_validate(row)

    def get_chat_history(self, session_id: str, slide_id: str, user_id: str) -> list[ChatMessageRow]:
        try:
            rows = self._backend.select(
                Table.CHAT_MESSAGES,
                [eq("session_id", session_id), eq("slide_id", slide_id), eq("user_id", user_id)],
                order_by="created_at",
            )
        except BackendError:
            logger.exception("Failed to load chat history of user %s", user_id)
            raise
        return [ChatMessageRow.model_validate(row) for row in rows]

    # -- sessions --------------------------------------------------------------

    def is_available_for_session(self, session_id: str) -> bool:
        """True when the presenting teacher has the assistant on and a key stored."""

        session = self._sessions.get_session(session_id)
        owner = self._lessons.get_lesson_owner(session.presentation_id) if session else None
        if owner is None:
            return False
        if not self._settings_service.get_ai_settings(owner).enabled:
            return False
        return self._settings_service.get_api_key(owner, AI_API_KEY_SETTING) is not None

    def ask(self, session_id: str, slide_id: str, user_id: str, question: str) -> str:
        """Answer a student's question about a slide of the session's lesson."""

        question = question.strip()
        if not question:
            raise InvalidInputError("Type a question for the assistant first.")
        session = self._sessions.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} does not exist.")
        participant = self._sessions.get_participant(session_id, user_id)
        if participant is None or not participant.is_active:
            raise NotParticipantError("Join the session before asking the assistant.")
        if not accepts_answers(session):
            raise SessionPausedError("The assistant is unavailable while the session is paused.")

        lesson = self._lessons.get_lesson_by_id(session.presentation_id)
        slide = next((s for s in lesson.slides if s.id == slide_id), None) if lesson else None
        if slide is None:
            raise NotFoundError("This slide is not part of the lesson being presented.")

        history = self.get_chat_history(session_id, slide_id, user_id)[-AI_MAX_HISTORY_MESSAGES:]
        messages = [
            {
                "role": "system",
                "content": f"{AI_SYSTEM_PROMPT}\n\nThe slide reads:\n{slide_plain_text(slide)}",
            },
            *({"role": message.role, "content": message.content} for message in history),
            {"role": "user", "content": question},
        ]
        reply = self.send_chat_completion(lesson.created_by, messages)

        self.save_chat_message(session_id, slide_id, user_id, "user", question)
        self.save_chat_message(session_id, slide_id, user_id, "assistant", reply)
        logger.info("Assistant answered user %s on slide %s", user_id, slide_id)
        return reply
