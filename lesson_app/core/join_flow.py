"""Joining a live session from a code or a shared join link.

A visitor without a signed-in user has their code parked in a
``PendingJoinStore`` and is sent to sign in after a short delay. After sign in
the code is taken out of the store (so it is used at most once) and the join
continues as usual.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from lesson_app.constants.session_constants import (
    SIGN_IN_REDIRECT_DELAY_SECONDS,
    STUDENT_SESSION_PATH,
)
from lesson_app.core.errors import BackendError, InvalidInputError, SessionNotFoundError
from lesson_app.core.models import AuthUser
from lesson_app.core.services.lesson_service import LessonService
from lesson_app.core.services.session_service import SessionService, normalize_join_code

logger = logging.getLogger(__name__)

SIGN_IN_REQUIRED_MESSAGE = "Please sign in to join the session"
NOT_SIGNED_IN_MESSAGE = "You must be logged in to join a session"
MISSING_CODE_MESSAGE = "Please enter a join code"
INVALID_CODE_MESSAGE = "Invalid code or session has ended"
LESSON_LOAD_FAILED_MESSAGE = "Failed to load lesson data"
JOIN_ERROR_MESSAGE = "An error occurred while joining the session"
JOIN_SUCCESS_MESSAGE = "Successfully joined the session!"


class JoinState(str, Enum):
    IDLE = "idle"
    AWAITING_SIGN_IN = "awaiting_sign_in"
    JOINING = "joining"
    JOINED = "joined"
    FAILED = "failed"


class JoinFailure(str, Enum):
    """Why the last join attempt failed."""

    MISSING_CODE = "missing_code"
    NOT_SIGNED_IN = "not_signed_in"
    INVALID_CODE = "invalid_code"
    LESSON_UNAVAILABLE = "lesson_unavailable"
    JOIN_ERROR = "join_error"


JOIN_FAILURE_MESSAGES: dict[JoinFailure, str] = {
    JoinFailure.MISSING_CODE: MISSING_CODE_MESSAGE,
    JoinFailure.NOT_SIGNED_IN: NOT_SIGNED_IN_MESSAGE,
    JoinFailure.INVALID_CODE: INVALID_CODE_MESSAGE,
    JoinFailure.LESSON_UNAVAILABLE: LESSON_LOAD_FAILED_MESSAGE,
    JoinFailure.JOIN_ERROR: JOIN_ERROR_MESSAGE,
}


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class JoinNavigation:
    """Where to go after a successful join, plus the state handed to that view."""

    path: str
    session_id: str
    presentation_id: str
    join_code: str

    @property
    def state(self) -> dict[str, Any]:
        return {
            "auto_join": True,
            "session_id": self.session_id,
            "presentation_id": self.presentation_id,
            "join_code": self.join_code,
        }


class PendingJoinStore(Protocol):
    def get(self) -> str | None: ...

    def set(self, code: str) -> None: ...

    def clear(self) -> None: ...


class MemoryPendingJoinStore:
    """Process-local pending code, forgotten when the process exits."""

    def __init__(self) -> None:
        self._code: str | None = None
        self._lock = threading.Lock()

    def get(self) -> str | None:
        with self._lock:
            return self._code

    def set(self, code: str) -> None:
        with self._lock:
            self._code = code

    def clear(self) -> None:
        with self._lock:
            self._code = None


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]
Notifier = Callable[[NotificationLevel, str], None]


def thread_timer_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class JoinSessionFlow:
    def __init__(
        self,
        session_service: SessionService,
        lesson_service: LessonService,
        *,
        pending_store: PendingJoinStore,
        notify: Notifier,
        navigate: Callable[[JoinNavigation], None],
        request_sign_in: Callable[[], None],
        schedule: Scheduler = thread_timer_scheduler,
    ) -> None:
        self._session_service = session_service
        self._lesson_service = lesson_service
        self._pending_store = pending_store
        self._notify = notify
        self._navigate = navigate
        self._request_sign_in = request_sign_in
        self._schedule = schedule
        self._sign_in_timer: Cancellable | None = None
        self.state = JoinState.IDLE
        self.is_joining = False
        self.last_error: JoinFailure | None = None

    def handle_link(self, code: str | None, user: AuthUser | None) -> JoinNavigation | None:
        """Entry point for ``/join?code=...`` style links."""

        code = normalize_join_code(code)
        if not code:
            return None
        if user is not None:
            return self.handle_join_session(code, user)

        self._pending_store.set(code)
        self.state = JoinState.AWAITING_SIGN_IN
        self._notify(NotificationLevel.INFO, SIGN_IN_REQUIRED_MESSAGE)
        self.cancel_scheduled_sign_in()
        self._sign_in_timer = self._schedule(SIGN_IN_REDIRECT_DELAY_SECONDS, self._request_sign_in)
        return None

    def cancel_scheduled_sign_in(self) -> None:
        if self._sign_in_timer is not None:
            self._sign_in_timer.cancel()
            self._sign_in_timer = None

    def resume_after_sign_in(self, user: AuthUser) -> JoinNavigation | None:
        """Continue a join that was parked while the visitor signed in."""

        code = self._pending_store.get()
        if not code:
            return None
        self._pending_store.clear()
        self.cancel_scheduled_sign_in()
        return self.handle_join_session(code, user)

    def handle_join_session(self, code: str | None, user: AuthUser | None) -> JoinNavigation | None:
        code = normalize_join_code(code)
        self.last_error = None
        if not code:
            self._fail(JoinFailure.MISSING_CODE)
            return None
        if user is None:
            self._fail(JoinFailure.NOT_SIGNED_IN)
            return None

        self.state = JoinState.JOINING
        self.is_joining = True
        try:
            joined = self._session_service.join_presentation_session(code, user.id)
            lesson = self._lesson_service.get_lesson_by_id(joined.presentation_id)
            if lesson is None:
                self._fail(JoinFailure.LESSON_UNAVAILABLE)
                return None
        except SessionNotFoundError as exc:
            self._fail(JoinFailure.INVALID_CODE, exc)
            return None
        except (BackendError, InvalidInputError) as exc:
            self._fail(JoinFailure.JOIN_ERROR, exc)
            return None
        finally:
            self.is_joining = False

        navigation = JoinNavigation(
            path=STUDENT_SESSION_PATH.format(session_id=joined.session_id),
            session_id=joined.session_id,
            presentation_id=joined.presentation_id,
            join_code=code,
        )
        self.state = JoinState.JOINED
        self._notify(NotificationLevel.SUCCESS, JOIN_SUCCESS_MESSAGE)
        self._navigate(navigation)
        return navigation

    def _fail(self, failure: JoinFailure, error: Exception | None = None) -> None:
        if error is not None:
            logger.warning("Join failed: %s", error)
        self.state = JoinState.FAILED
        self.last_error = failure
        self._notify(NotificationLevel.ERROR, JOIN_FAILURE_MESSAGES[failure])
