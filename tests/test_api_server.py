"""Student server endpoints."""

import pytest
from fastapi.testclient import TestClient

from lesson_app.backend.client import eq
from lesson_app.backend.tables import Table
from lesson_app.constants.network_constants import AUTH_COOKIE, PENDING_JOIN_COOKIE
from lesson_app.constants.session_constants import AI_API_KEY_SETTING
from lesson_app.core import join_flow
from lesson_app.core.join_flow import JoinFailure
from lesson_app.core.services import ai_service
from lesson_app.core.services.settings_service import AISettings, CelebrationSettings
from lesson_app.server.api_server import create_api_app


@pytest.fixture
def client(services):
    return TestClient(create_api_app(services))


@pytest.fixture
def signed_in(client):
    response = client.post(
        "/auth/register", json={"email": "kid@school.test", "password": "student-pass", "name": "Kid Student"}
    )
    assert response.status_code == 201
    return client


def _slide_ids(services, lesson):
    rows = services.backend.select(Table.SLIDES, [eq("presentation_id", lesson.id)], order_by="slide_order")
    return [row["id"] for row in rows]


class TestAuthEndpoints:
    def test_register_creates_a_student(self, signed_in):
        me = signed_in.get("/auth/me").json()
        assert me["role"] == "student"
        assert me["name"] == "Kid Student"

    def test_me_requires_sign_in(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_wrong_password(self, client, teacher):
        response = client.post("/auth/login", json={"email": "teacher@school.test", "password": "wrong-pass"})
        assert response.status_code == 401

    def test_short_password(self, client):
        response = client.post("/auth/register", json={"email": "a@school.test", "password": "123"})
        assert response.status_code == 422

    def test_logout(self, signed_in):
        signed_in.post("/auth/logout")
        assert signed_in.get("/auth/me").status_code == 401


class TestPages:
    def test_landing_page(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Sign in to join a session." in response.text

    def test_session_page_needs_sign_in(self, client):
        response = client.get("/student/session/abc", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_session_page_has_the_celebration_overlay(self, signed_in):
        response = signed_in.get("/student/session/abc")
        assert response.status_code == 200
        assert 'id="celebration"' in response.text
        assert "const celebrationMs = 3000;" in response.text

    def test_session_page_has_the_assistant_panel(self, signed_in):
        response = signed_in.get("/student/session/abc")
        assert 'id="assistant" class="assistant hidden"' in response.text
        assert "/chat?slide_id=" in response.text


class TestJoinLinks:
    def test_signed_out_link_waits_for_sign_in(self, client, session, services):
        response = client.get(f"/join?code={session.join_code}")
        assert response.status_code == 200
        assert 'content="1.5;url=/login"' in response.text
        assert "Please sign in to join the session" in response.text
        assert client.cookies.get(PENDING_JOIN_COOKIE) == session.join_code

        client.post("/auth/register", json={"email": "late@school.test", "password": "student-pass"})
        response = client.get("/auth/continue", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == f"/student/session/{session.id}"
        assert client.cookies.get(PENDING_JOIN_COOKIE) is None
        assert len(services.sessions.get_session_participants(session.id)) == 1

    def test_signed_in_link_redirects_to_session(self, signed_in, session):
        response = signed_in.get(f"/join?code={session.join_code.lower()}", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == f"/student/session/{session.id}"

    def test_invalid_link(self, signed_in):
        response = signed_in.get("/join?code=NOPE99")
        assert response.status_code == 404
        assert "Invalid code or session has ended" in response.text


class TestSessionApi:
    def test_join_and_state(self, signed_in, session, lesson):
        joined = signed_in.post("/api/join", json={"code": session.join_code})
        assert joined.status_code == 200
        assert joined.json()["state"]["session_id"] == session.id

        state = signed_in.get(f"/api/sessions/{session.id}/state").json()
        assert state["slide_index"] == 0
        assert state["slide_count"] == 3
        assert state["lesson_title"] == "Fractions"
        assert state["allowed_slides"] == []
        assert 'class="answer-form"' in state["slide_html"]
        assert 'class="correct"' not in state["slide_html"]
        assert state["assistant_enabled"] is False

    def test_join_with_bad_code(self, signed_in):
        response = signed_in.post("/api/join", json={"code": "NOPE99"})
        assert response.status_code == 404

    def test_join_status_does_not_depend_on_wording(self, signed_in, monkeypatch):
        monkeypatch.setitem(join_flow.JOIN_FAILURE_MESSAGES, JoinFailure.INVALID_CODE, "That code is not valid")
        response = signed_in.post("/api/join", json={"code": "NOPE99"})
        assert response.status_code == 404
        assert response.json()["detail"] == "That code is not valid"

        page = signed_in.get("/join?code=NOPE99")
        assert page.status_code == 404
        assert "That code is not valid" in page.text

    def test_join_requires_sign_in(self, client, session):
        assert client.post("/api/join", json={"code": session.join_code}).status_code == 401

    def test_state_requires_participation(self, signed_in, session):
        assert signed_in.get(f"/api/sessions/{session.id}/state").status_code == 403

    def test_state_follows_the_teacher(self, signed_in, session, services):
        signed_in.post("/api/join", json={"code": session.join_code})
        services.sessions.update_session_slide(session.id, 2)
        assert signed_in.get(f"/api/sessions/{session.id}/state").json()["slide_index"] == 2

    def test_navigation(self, signed_in, session, services):
        signed_in.post("/api/join", json={"code": session.join_code})
        url = f"/api/sessions/{session.id}/navigate"
        assert signed_in.post(url, json={"slide_index": 1}).status_code == 409

        services.sessions.update_session_flags(session.id, is_synced=False)
        assert signed_in.post(url, json={"slide_index": 1}).status_code == 200
        assert signed_in.get(f"/api/sessions/{session.id}/state").json()["slide_index"] == 1

    def test_answers(self, signed_in, session, services, lesson):
        signed_in.post("/api/join", json={"code": session.join_code})
        slide_id = _slide_ids(services, lesson)[0]
        url = f"/api/sessions/{session.id}/answers"
        response = signed_in.post(url, json={"slide_id": slide_id, "block_id": "q-half", "answer": "0.5"})
        assert response.status_code == 201
        assert response.json()["is_correct"] is True

        services.sessions.update_session_flags(session.id, is_paused=True)
        response = signed_in.post(url, json={"slide_id": slide_id, "block_id": "q-half", "answer": "0.5"})
        assert response.status_code == 409

    def test_correct_answers_carry_the_teachers_celebration(self, signed_in, session, services, lesson, teacher):
        services.settings.save_celebration_settings(
            teacher.id, CelebrationSettings(type="custom", phrase="Brilliant!", sound=False, screen_effect="stars")
        )
        signed_in.post("/api/join", json={"code": session.join_code})
        slide_id = _slide_ids(services, lesson)[0]
        url = f"/api/sessions/{session.id}/answers"

        correct = signed_in.post(url, json={"slide_id": slide_id, "block_id": "q-half", "answer": "0.5"}).json()
        assert correct["celebration"] == {
            "phrase": "Brilliant!",
            "confetti": True,
            "sound": False,
            "screen_effect": "stars",
        }
        wrong = signed_in.post(url, json={"slide_id": slide_id, "block_id": "q-half", "answer": "0.25"}).json()
        assert wrong["celebration"] is None

    def test_answers_need_participation(self, signed_in, session, services, lesson):
        slide_id = _slide_ids(services, lesson)[0]
        url = f"/api/sessions/{session.id}/answers"
        response = signed_in.post(url, json={"slide_id": slide_id, "block_id": "q-half", "answer": "0.5"})
        assert response.status_code == 403
        assert services.sessions.get_session_answers(session.id) == []

    def test_leave(self, signed_in, session, services):
        user = signed_in.get("/auth/me").json()
        signed_in.post("/api/join", json={"code": session.join_code})
        assert signed_in.post(f"/api/sessions/{session.id}/leave").json() == {"left": True}
        assert services.sessions.get_participant(session.id, user["id"]).is_active is False


class TestAssistantApi:
    @pytest.fixture
    def assistant_on(self, services, teacher, monkeypatch):
        services.settings.save_ai_settings(teacher.id, AISettings(enabled=True))
        services.settings.save_api_key(teacher.id, "or-key", AI_API_KEY_SETTING)

        class Reply:
            ok = True
            status_code = 200

            def json(self):
                return {"choices": [{"message": {"content": "Split it into two equal parts."}}]}

        monkeypatch.setattr(ai_service.requests, "post", lambda url, **kwargs: Reply())

    def test_state_reports_the_assistant(self, signed_in, session, assistant_on):
        signed_in.post("/api/join", json={"code": session.join_code})
        assert signed_in.get(f"/api/sessions/{session.id}/state").json()["assistant_enabled"] is True

    def test_ask_and_history(self, signed_in, session, services, lesson, assistant_on):
        signed_in.post("/api/join", json={"code": session.join_code})
        slide_id = _slide_ids(services, lesson)[0]
        url = f"/api/sessions/{session.id}/chat"

        response = signed_in.post(url, json={"slide_id": slide_id, "message": "How do I halve 8?"})
        assert response.status_code == 200
        assert response.json() == {"role": "assistant", "content": "Split it into two equal parts."}

        history = signed_in.get(url, params={"slide_id": slide_id}).json()["messages"]
        assert [m["role"] for m in history] == ["user", "assistant"]
        assert history[0]["content"] == "How do I halve 8?"

    def test_assistant_switched_off(self, signed_in, session, services, lesson):
        signed_in.post("/api/join", json={"code": session.join_code})
        slide_id = _slide_ids(services, lesson)[0]
        response = signed_in.post(
            f"/api/sessions/{session.id}/chat", json={"slide_id": slide_id, "message": "Hello?"}
        )
        assert response.status_code == 503
        assert "turned off" in response.json()["detail"]

    def test_ask_needs_participation(self, signed_in, session, services, lesson, assistant_on):
        slide_id = _slide_ids(services, lesson)[0]
        response = signed_in.post(
            f"/api/sessions/{session.id}/chat", json={"slide_id": slide_id, "message": "Hello?"}
        )
        assert response.status_code == 403

class TestStorage:
    def test_serves_uploaded_images(self, client, services, teacher):
        uploaded = services.images.upload_image("chart.png", b"png-bytes", teacher.id)
        response = client.get(uploaded.url.replace("http://classroom.test", ""))
        assert response.status_code == 200
        assert response.content == b"png-bytes"
        assert response.headers["content-type"] == "image/png"

    def test_missing_object(self, client):
        assert client.get("/storage/lesson-images/nope.png").status_code == 404


def test_auth_cookie_is_http_only(client):
    response = client.post(
        "/auth/register", json={"email": "c@school.test", "password": "student-pass"}
    )
    assert AUTH_COOKIE in response.cookies
    assert "httponly" in response.headers["set-cookie"].lower()
