"""FastAPI server that exposes the student pages and endpoints."""

from __future__ import annotations

import hashlib
import logging
from threading import Thread
from typing import Callable, NoReturn

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel
import uvicorn

from lesson_app.constants.network_constants import (
    AUTH_COOKIE,
    AUTH_COOKIE_MAX_AGE_SECONDS,
    DEFAULT_HOST,
    DEFAULT_PORT,
    PENDING_JOIN_COOKIE,
    STUDENT_POLL_INTERVAL_MS,
)
from lesson_app.constants.session_constants import CELEBRATION_DURATION_MS
from lesson_app.core.app_services import AppServices
from lesson_app.core.errors import (
    AIServiceError,
    InvalidCredentialError,
    InvalidInputError,
    LessonAppError,
    NavigationRefusedError,
    NotFoundError,
    NotParticipantError,
    SessionPausedError,
)
from lesson_app.core.join_flow import (
    JoinFailure,
    JoinNavigation,
    JoinSessionFlow,
    JoinState,
    NotificationLevel,
)
from lesson_app.core.models import AnswerValue, AuthUser, UserRole
from lesson_app.core.navigation import allowed_slides, effective_slide, is_session_open
from lesson_app.core.services.settings_service import CelebrationSettings
from lesson_app.core.slide_renderer import Audience, SlideRenderer
from lesson_app.server.student_pages import (
    LANDING_PAGE_HTML,
    LOGIN_PAGE_HTML,
    SESSION_PAGE_HTML,
    SIGN_IN_REDIRECT_HTML,
    render_page,
)

logger = logging.getLogger(__name__)

_STATUS_FOR_ERROR: tuple[tuple[type[LessonAppError], int], ...] = (
    (InvalidCredentialError, 401),
    (NotParticipantError, 403),
    (NotFoundError, 404),
    (NavigationRefusedError, 409),
    (SessionPausedError, 409),
    (InvalidInputError, 422),
    (AIServiceError, 503),
)

_STATUS_FOR_JOIN_FAILURE: dict[JoinFailure, int] = {
    JoinFailure.MISSING_CODE: 422,
    JoinFailure.NOT_SIGNED_IN: 401,
    JoinFailure.INVALID_CODE: 404,
    JoinFailure.LESSON_UNAVAILABLE: 404,
    JoinFailure.JOIN_ERROR: 502,
}


def _join_failure_status(flow: JoinSessionFlow) -> int:
    if flow.last_error is None:
        return 400
    return _STATUS_FOR_JOIN_FAILURE[flow.last_error]


def _raise_http(exc: LessonAppError) -> NoReturn:
    for error_type, status_code in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    raise HTTPException(status_code=502, detail=str(exc)) from exc


class CookiePendingJoinStore:
    """Pending join code kept in a browser session cookie.

    Reads come from the request; writes are collected and copied onto the
    response with ``apply``.
    """

    def __init__(self, initial: str | None) -> None:
        self._code = initial or None
        self._changed = False

    def get(self) -> str | None:
        return self._code

    def set(self, code: str) -> None:
        self._code = code
        self._changed = True

    def clear(self) -> None:
        self._code = None
        self._changed = True

    def apply(self, response: Response) -> None:
        if not self._changed:
            return
        if self._code:
            # No max_age: the code lives as long as the browser session.
            response.set_cookie(key=PENDING_JOIN_COOKIE, value=self._code, samesite="lax", httponly=True)
        else:
            response.delete_cookie(key=PENDING_JOIN_COOKIE)


class _NoticeLog:
    def __init__(self) -> None:
        self.entries: list[tuple[NotificationLevel, str]] = []

    def __call__(self, level: NotificationLevel, message: str) -> None:
        self.entries.append((level, message))

    def last(self, level: NotificationLevel | None = None) -> str:
        for entry_level, message in reversed(self.entries):
            if level is None or entry_level is level:
                return message
        return ""


class _RecordedRedirect:
    """Stands in for a timer: the browser performs the delayed redirect."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class AuthPayload(BaseModel):
    email: str
    password: str


class RegisterPayload(AuthPayload):
    name: str = ""


class JoinPayload(BaseModel):
    code: str


class NavigatePayload(BaseModel):
    slide_index: int


class AnswerPayload(BaseModel):
    slide_id: str
    block_id: str
    answer: AnswerValue


class ChatPayload(BaseModel):
    slide_id: str
    message: str


def _get_services_dependency(services: AppServices):
    def dependency() -> AppServices:
        return services

    return dependency


def create_api_app(services: AppServices) -> FastAPI:
    """Create a FastAPI application wired to the provided services."""
    app = FastAPI(title="LessonQt API", version="0.1.0")
    services_dep = _get_services_dependency(services)
    student_renderer = SlideRenderer(Audience.STUDENT)

    def optional_user(request: Request) -> AuthUser | None:
        return services.backend.auth.user_for_token(request.cookies.get(AUTH_COOKIE))

    def required_user(user: AuthUser | None = Depends(optional_user)) -> AuthUser:
        if user is None:
            raise HTTPException(status_code=401, detail="Please sign in first.")
        return user

    def make_join_flow(
        pending: CookiePendingJoinStore, notices: _NoticeLog, redirects: list[_RecordedRedirect]
    ) -> JoinSessionFlow:
        def schedule(delay: float, callback: Callable[[], None]) -> _RecordedRedirect:
            redirect = _RecordedRedirect(delay)
            redirects.append(redirect)
            return redirect

        return JoinSessionFlow(
            services.sessions,
            services.lessons,
            pending_store=pending,
            notify=notices,
            navigate=lambda navigation: None,
            request_sign_in=lambda: None,
            schedule=schedule,
        )

    def celebration_for(app_services: AppServices, session_id: str) -> dict[str, object]:
        """The presenting teacher's celebration for a correct answer."""
        try:
            session = app_services.sessions.get_session(session_id)
            owner = app_services.lessons.get_lesson_owner(session.presentation_id) if session else None
            if owner is not None:
                return app_services.settings.get_celebration_settings(owner).resolve()
        except LessonAppError as exc:
            logger.warning("Falling back to the default celebration for session %s: %s", session_id, exc)
        return CelebrationSettings().resolve()

    def assistant_available(app_services: AppServices, session_id: str) -> bool:
        try:
            return app_services.ai.is_available_for_session(session_id)
        except LessonAppError as exc:
            logger.warning("Could not check the assistant for session %s: %s", session_id, exc)
            return False

    def landing_page(user: AuthUser | None, error: str = "", status_code: int = 200) -> HTMLResponse:
        greeting = f"Signed in as {user.name or user.email}." if user else "Sign in to join a session."
        return HTMLResponse(
            render_page(LANDING_PAGE_HTML, greeting=greeting, error=error), status_code=status_code
        )

    def join_outcome(
        flow: JoinSessionFlow,
        navigation: JoinNavigation | None,
        notices: _NoticeLog,
        user: AuthUser | None,
    ) -> Response:
        if navigation is not None:
            return RedirectResponse(navigation.path, status_code=303)
        if flow.state is JoinState.FAILED:
            message = notices.last(NotificationLevel.ERROR)
            return landing_page(user, error=message, status_code=_join_failure_status(flow))
        return RedirectResponse("/", status_code=303)

    # -- pages ---------------------------------------------------------------

    @app.get("/", response_class=HTMLResponse)
    def serve_landing_page(user: AuthUser | None = Depends(optional_user)) -> HTMLResponse:
        return landing_page(user)

    @app.get("/login", response_class=HTMLResponse)
    def serve_login_page() -> HTMLResponse:
        return HTMLResponse(render_page(LOGIN_PAGE_HTML))

    @app.get("/join")
    def follow_join_link(
        request: Request,
        code: str = "",
        user: AuthUser | None = Depends(optional_user),
    ) -> Response:
        pending = CookiePendingJoinStore(request.cookies.get(PENDING_JOIN_COOKIE))
        notices = _NoticeLog()
        redirects: list[_RecordedRedirect] = []
        flow = make_join_flow(pending, notices, redirects)
        navigation = flow.handle_link(code, user)
        if flow.state is JoinState.AWAITING_SIGN_IN:
            delay = redirects[-1].delay if redirects else 0
            response: Response = HTMLResponse(
                render_page(SIGN_IN_REDIRECT_HTML, delay=f"{delay:g}", message=notices.last())
            )
        else:
            response = join_outcome(flow, navigation, notices, user)
        pending.apply(response)
        return response

    @app.get("/auth/continue")
    def continue_after_sign_in(
        request: Request, user: AuthUser | None = Depends(optional_user)
    ) -> Response:
        if user is None:
            return RedirectResponse("/login", status_code=303)
        pending = CookiePendingJoinStore(request.cookies.get(PENDING_JOIN_COOKIE))
        notices = _NoticeLog()
        flow = make_join_flow(pending, notices, [])
        navigation = flow.resume_after_sign_in(user)
        response = join_outcome(flow, navigation, notices, user)
        pending.apply(response)
        return response

    @app.get("/student/session/{session_id}", response_class=HTMLResponse)
    def serve_session_page(
        session_id: str, user: AuthUser | None = Depends(optional_user)
    ) -> Response:
        if user is None:
            return RedirectResponse("/login", status_code=303)
        return HTMLResponse(
            render_page(
                SESSION_PAGE_HTML,
                session_id=session_id,
                poll_ms=STUDENT_POLL_INTERVAL_MS,
                celebration_ms=CELEBRATION_DURATION_MS,
            )
        )

    # -- auth ----------------------------------------------------------------

    @app.post("/auth/login")
    def login(payload: AuthPayload, response: Response) -> dict[str, object]:
        try:
            session = services.backend.auth.authenticate(payload.email, payload.password)
        except LessonAppError as exc:
            _raise_http(exc)
        _set_auth_cookie(response, session.access_token)
        return _user_json(session.user)

    @app.post("/auth/register", status_code=201)
    def register(payload: RegisterPayload, response: Response) -> dict[str, object]:
        try:
            services.backend.auth.register(
                payload.email, payload.password, role=UserRole.STUDENT, name=payload.name
            )
            session = services.backend.auth.authenticate(payload.email, payload.password)
        except LessonAppError as exc:
            _raise_http(exc)
        _set_auth_cookie(response, session.access_token)
        return _user_json(session.user)

    @app.post("/auth/logout")
    def logout(request: Request, response: Response) -> dict[str, object]:
        token = request.cookies.get(AUTH_COOKIE)
        if token:
            services.backend.auth.revoke(token)
        response.delete_cookie(key=AUTH_COOKIE)
        return {"signed_out": True}

    @app.get("/auth/me")
    def who_am_i(user: AuthUser = Depends(required_user)) -> dict[str, object]:
        return _user_json(user)

    # -- sessions ------------------------------------------------------------

    @app.post("/api/join")
    def join_session(
        payload: JoinPayload,
        user: AuthUser = Depends(required_user),
    ) -> dict[str, object]:
        notices = _NoticeLog()
        flow = make_join_flow(CookiePendingJoinStore(None), notices, [])
        navigation = flow.handle_join_session(payload.code, user)
        if navigation is None:
            message = notices.last(NotificationLevel.ERROR)
            raise HTTPException(status_code=_join_failure_status(flow), detail=message)
        return {"path": navigation.path, "state": navigation.state}

    @app.get("/api/sessions/{session_id}/state")
    def get_session_state(
        session_id: str,
        user: AuthUser = Depends(required_user),
        app_services: AppServices = Depends(services_dep),
    ) -> dict[str, object]:
        try:
            session = app_services.sessions.get_session(session_id)
            if session is None:
                raise NotFoundError(f"Session {session_id} does not exist.")
            participant = app_services.sessions.get_participant(session_id, user.id)
            if participant is None:
                raise NotParticipantError("Join the session first.")
            lesson = app_services.lessons.get_lesson_by_id(session.presentation_id)
            if lesson is None or not lesson.slides:
                raise NotFoundError("The lesson for this session is no longer available.")
        except LessonAppError as exc:
            _raise_http(exc)

        slide_count = len(lesson.slides)
        index = min(effective_slide(session, participant), slide_count - 1)
        slide = lesson.slides[index]
        slide_html = student_renderer.render_slide(slide)
        return {
            "session_id": session.id,
            "lesson_title": lesson.title,
            "join_code": session.join_code,
            "slide_index": index,
            "slide_count": slide_count,
            "slide_id": slide.id,
            "slide_html": slide_html,
            "slide_version": hashlib.sha1(slide_html.encode("utf-8")).hexdigest(),
            "is_synced": session.is_synced,
            "is_paused": session.is_paused,
            "student_pacing_enabled": session.student_pacing_enabled,
            "allowed_slides": allowed_slides(session, slide_count),
            "ended": not is_session_open(session),
            "assistant_enabled": assistant_available(app_services, session.id),
        }

    @app.post("/api/sessions/{session_id}/navigate")
    def navigate(
        session_id: str,
        payload: NavigatePayload,
        user: AuthUser = Depends(required_user),
        app_services: AppServices = Depends(services_dep),
    ) -> dict[str, object]:
        try:
            app_services.sessions.update_student_slide(session_id, user.id, payload.slide_index)
        except LessonAppError as exc:
            _raise_http(exc)
        return {"slide_index": payload.slide_index}

    @app.post("/api/sessions/{session_id}/answers", status_code=201)
    def submit_answer(
        session_id: str,
        payload: AnswerPayload,
        user: AuthUser = Depends(required_user),
        app_services: AppServices = Depends(services_dep),
    ) -> dict[str, object]:
        try:
            row = app_services.sessions.submit_answer(
                session_id, payload.slide_id, payload.block_id, user.id, payload.answer
            )
        except LessonAppError as exc:
            _raise_http(exc)
        return {
            "answer_id": row.id,
            "is_correct": row.is_correct,
            "submitted_at": row.submitted_at.isoformat(),
            "celebration": celebration_for(app_services, session_id) if row.is_correct else None,
        }

    @app.get("/api/sessions/{session_id}/chat")
    def get_chat_history(
        session_id: str,
        slide_id: str,
        user: AuthUser = Depends(required_user),
        app_services: AppServices = Depends(services_dep),
    ) -> dict[str, object]:
        try:
            history = app_services.ai.get_chat_history(session_id, slide_id, user.id)
        except LessonAppError as exc:
            _raise_http(exc)
        return {"messages": [{"role": m.role, "content": m.content} for m in history]}

    @app.post("/api/sessions/{session_id}/chat")
    def ask_assistant(
        session_id: str,
        payload: ChatPayload,
        user: AuthUser = Depends(required_user),
        app_services: AppServices = Depends(services_dep),
    ) -> dict[str, object]:
        try:
            reply = app_services.ai.ask(session_id, payload.slide_id, user.id, payload.message)
        except LessonAppError as exc:
            _raise_http(exc)
        return {"role": "assistant", "content": reply}

    @app.post("/api/sessions/{session_id}/leave")
    def leave_session(
        session_id: str,
        user: AuthUser = Depends(required_user),
        app_services: AppServices = Depends(services_dep),
    ) -> dict[str, object]:
        try:
            app_services.sessions.leave_presentation_session(session_id, user.id)
        except LessonAppError as exc:
            _raise_http(exc)
        return {"left": True}

    # -- storage -------------------------------------------------------------

    @app.get("/storage/{bucket}/{path:path}")
    def serve_stored_object(bucket: str, path: str) -> Response:
        try:
            data, content_type = services.backend.storage.download(bucket, path)
        except LessonAppError as exc:
            _raise_http(exc)
        return Response(content=data, media_type=content_type)

    return app


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        max_age=AUTH_COOKIE_MAX_AGE_SECONDS,
        samesite="lax",
        httponly=True,
    )


def _user_json(user: AuthUser) -> dict[str, object]:
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role.value}


def start_api_server(
    services: AppServices,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(services)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="LessonApiServer", daemon=True)
    thread.start()
    logger.info("Student server listening on %s:%s", host, port)
    return thread
