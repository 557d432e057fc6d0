"""Classroom assistant requests and chat history."""

import pytest
import requests

from lesson_app.backend.client import eq
from lesson_app.backend.tables import Table
from lesson_app.constants.session_constants import AI_API_KEY_SETTING, DEFAULT_AI_ENDPOINT
from lesson_app.core.errors import (
    AIServiceError,
    InvalidInputError,
    NotFoundError,
    NotParticipantError,
    SessionPausedError,
)
from lesson_app.core.services import ai_service
from lesson_app.core.services.ai_service import extract_reply
from lesson_app.core.services.settings_service import AISettings


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def _completion(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_post(url, **kwargs):
        recorded.append((url, kwargs))
        return FakeResponse(_completion("Think about two equal parts."))

    monkeypatch.setattr(ai_service.requests, "post", fake_post)
    return recorded


@pytest.fixture
def enabled_teacher(services, teacher):
    services.settings.save_ai_settings(teacher.id, AISettings(enabled=True, model="openai/gpt-4o"))
    services.settings.save_api_key(teacher.id, "or-key", AI_API_KEY_SETTING)
    return teacher


@pytest.fixture
def joined(services, session, student):
    services.sessions.join_presentation_session(session.join_code, student.id)
    return student


def _slide_id(services, session, index):
    rows = services.backend.select(
        Table.SLIDES, [eq("presentation_id", session.presentation_id)], order_by="slide_order"
    )
    return rows[index]["id"]


class TestExtractReply:
    def test_message_content(self):
        assert extract_reply(_completion("Hi")) == "Hi"

    def test_multi_part_content(self):
        data = {"choices": [{"message": {"content": [{"type": "image_url"}, {"type": "text", "text": "Hi"}]}}]}
        assert extract_reply(data) == "Hi"

    def test_completion_text_and_generic_fields(self):
        assert extract_reply({"choices": [{"text": "Legacy"}]}) == "Legacy"
        assert extract_reply({"response": "Plain"}) == "Plain"
        assert extract_reply({"output": "Out"}) == "Out"

    def test_nothing_usable(self):
        assert extract_reply({"choices": []}) is None
        assert extract_reply(["not", "a", "dict"]) is None


class TestChatCompletion:
    def test_sends_the_teachers_model_and_key(self, services, enabled_teacher, calls):
        reply = services.ai.send_chat_completion(enabled_teacher.id, [{"role": "user", "content": "Hello"}])
        assert reply == "Think about two equal parts."
        url, kwargs = calls[0]
        assert url == DEFAULT_AI_ENDPOINT
        assert kwargs["headers"]["Authorization"] == "Bearer or-key"
        assert kwargs["headers"]["X-Title"] == "LessonQt"
        assert kwargs["json"]["model"] == "openai/gpt-4o"
        assert kwargs["json"]["temperature"] == 0.7

    def test_disabled(self, services, teacher, calls):
        services.settings.save_api_key(teacher.id, "or-key", AI_API_KEY_SETTING)
        with pytest.raises(AIServiceError, match="turned off"):
            services.ai.send_chat_completion(teacher.id, [{"role": "user", "content": "Hello"}])
        assert calls == []

    def test_missing_api_key(self, services, teacher, calls):
        services.settings.save_ai_settings(teacher.id, AISettings(enabled=True))
        with pytest.raises(AIServiceError, match="API key"):
            services.ai.send_chat_completion(teacher.id, [{"role": "user", "content": "Hello"}])
        assert calls == []

    def test_provider_error_message_is_surfaced(self, services, enabled_teacher, monkeypatch):
        monkeypatch.setattr(
            ai_service.requests,
            "post",
            lambda url, **kwargs: FakeResponse({"error": {"message": "Insufficient credits"}}, status_code=402),
        )
        with pytest.raises(AIServiceError, match="Insufficient credits"):
            services.ai.send_chat_completion(enabled_teacher.id, [{"role": "user", "content": "Hello"}])

    def test_empty_reply(self, services, enabled_teacher, monkeypatch):
        monkeypatch.setattr(ai_service.requests, "post", lambda url, **kwargs: FakeResponse({"choices": []}))
        with pytest.raises(AIServiceError, match="No valid content"):
            services.ai.send_chat_completion(enabled_teacher.id, [{"role": "user", "content": "Hello"}])

    def test_connection_failure(self, services, enabled_teacher, monkeypatch):
        def unreachable(url, **kwargs):
            raise requests.ConnectionError("no route")

        monkeypatch.setattr(ai_service.requests, "post", unreachable)
        with pytest.raises(AIServiceError, match="Unable to reach"):
            services.ai.send_chat_completion(enabled_teacher.id, [{"role": "user", "content": "Hello"}])


class TestAvailableModels:
    def test_lists_models(self, services, enabled_teacher, monkeypatch):
        seen = []

        def fake_get(url, **kwargs):
            seen.append((url, kwargs))
            return FakeResponse(
                {"data": [{"id": "openai/gpt-4o", "name": "GPT-4o", "context_length": 128000}, {"id": "meta/llama-3"}]}
            )

        monkeypatch.setattr(ai_service.requests, "get", fake_get)
        models = services.ai.fetch_available_models(enabled_teacher.id)
        assert models == [
            {"id": "openai/gpt-4o", "name": "GPT-4o", "context_length": 128000},
            {"id": "meta/llama-3", "name": "llama-3", "context_length": None},
        ]
        assert seen[0][0] == "https://openrouter.ai/api/v1/models"
        assert seen[0][1]["headers"]["Authorization"] == "Bearer or-key"

    def test_no_key(self, services, teacher):
        assert services.ai.fetch_available_models(teacher.id) is None

    def test_http_failure(self, services, enabled_teacher, monkeypatch):
        monkeypatch.setattr(ai_service.requests, "get", lambda url, **kwargs: FakeResponse(status_code=401))
        assert services.ai.fetch_available_models(enabled_teacher.id) is None


class TestAskInSession:
    def test_reply_is_kept_in_the_history(self, services, session, enabled_teacher, joined, calls):
        slide_id = _slide_id(services, session, 0)
        reply = services.ai.ask(session.id, slide_id, joined.id, "  What is a half? ")
        assert reply == "Think about two equal parts."

        history = services.ai.get_chat_history(session.id, slide_id, joined.id)
        assert [(m.role, m.content) for m in history] == [
            ("user", "What is a half?"),
            ("assistant", "Think about two equal parts."),
        ]
        messages = calls[0][1]["json"]["messages"]
        assert messages[0]["role"] == "system"
        assert "Pick one half" in messages[0]["content"]
        assert messages[-1] == {"role": "user", "content": "What is a half?"}

    def test_follow_up_carries_earlier_turns(self, services, session, enabled_teacher, joined, calls):
        slide_id = _slide_id(services, session, 0)
        services.ai.ask(session.id, slide_id, joined.id, "First question")
        services.ai.ask(session.id, slide_id, joined.id, "Second question")
        messages = calls[1][1]["json"]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[1]["content"] == "First question"

    def test_history_is_per_slide_and_student(self, services, session, enabled_teacher, joined, make_student, calls):
        first, second = _slide_id(services, session, 0), _slide_id(services, session, 1)
        services.ai.ask(session.id, first, joined.id, "About slide one")
        other = make_student("Alan Turing")
        services.sessions.join_presentation_session(session.join_code, other.id)

        assert services.ai.get_chat_history(session.id, second, joined.id) == []
        assert services.ai.get_chat_history(session.id, first, other.id) == []

    def test_failed_request_stores_nothing(self, services, session, teacher, joined, calls):
        slide_id = _slide_id(services, session, 0)
        with pytest.raises(AIServiceError):
            services.ai.ask(session.id, slide_id, joined.id, "Hello?")
        assert services.ai.get_chat_history(session.id, slide_id, joined.id) == []

    def test_only_participants_may_ask(self, services, session, enabled_teacher, student, calls):
        with pytest.raises(NotParticipantError):
            services.ai.ask(session.id, _slide_id(services, session, 0), student.id, "Hello?")
        assert calls == []

    def test_paused_session(self, services, session, enabled_teacher, joined, calls):
        services.sessions.update_session_flags(session.id, is_paused=True)
        with pytest.raises(SessionPausedError):
            services.ai.ask(session.id, _slide_id(services, session, 0), joined.id, "Hello?")

    def test_slide_of_another_lesson(self, services, session, enabled_teacher, joined, teacher, calls):
        other = services.lessons.create_lesson(teacher.id, "Decimals")
        with pytest.raises(NotFoundError):
            services.ai.ask(session.id, other.slides[0].id, joined.id, "Hello?")

    def test_empty_question(self, services, session, enabled_teacher, joined, calls):
        with pytest.raises(InvalidInputError):
            services.ai.ask(session.id, _slide_id(services, session, 0), joined.id, "   ")

    def test_availability_follows_the_teachers_settings(self, services, session, teacher):
        assert services.ai.is_available_for_session(session.id) is False
        services.settings.save_ai_settings(teacher.id, AISettings(enabled=True))
        assert services.ai.is_available_for_session(session.id) is False
        services.settings.save_api_key(teacher.id, "or-key", AI_API_KEY_SETTING)
        assert services.ai.is_available_for_session(session.id) is True
        assert services.ai.is_available_for_session("missing") is False
