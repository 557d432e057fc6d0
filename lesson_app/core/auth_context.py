"""Application-wide view of who is signed in."""

from __future__ import annotations

import logging
from typing import Callable

from lesson_app.backend.auth import AuthClient
from lesson_app.core.models import AuthUser, UserRole

logger = logging.getLogger(__name__)

UserListener = Callable[["AuthUser | None"], None]


class AuthContext:
    """Holds the current user and tells listeners when it changes.

    Call ``initialize`` once at startup and ``teardown`` on shutdown. The user
    only changes through ``login``, ``register`` and ``logout`` or through
    auth events from the client.
    """

    def __init__(self, client: AuthClient) -> None:
        self._client = client
        self._user: AuthUser | None = None
        self._is_loading = True
        self._listeners: list[UserListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def user(self) -> AuthUser | None:
        return self._user

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_teacher(self) -> bool:
        return self._user is not None and self._user.role is UserRole.TEACHER

    def add_listener(self, listener: UserListener) -> None:
        self._listeners.append(listener)

    def initialize(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._client.on_auth_state_change(self._on_auth_event)
        session = self._client.get_session()
        self._is_loading = False
        self._set_user(session.user if session else None)

    def teardown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def login(self, email: str, password: str) -> AuthUser:
        session = self._client.sign_in_with_password(email, password)
        logger.info("Signed in as %s", session.user.email)
        return session.user

    def register(self, email: str, password: str, *, role: UserRole, name: str) -> AuthUser:
        session = self._client.sign_up(email, password, role=role, name=name)
        logger.info("Registered and signed in as %s", session.user.email)
        return session.user

    def logout(self) -> None:
        self._client.sign_out()
        logger.info("Signed out")

    def _on_auth_event(self, event: str, user: AuthUser | None) -> None:
        logger.debug("Auth event %s", event)
        self._set_user(user)

    def _set_user(self, user: AuthUser | None) -> None:
        self._user = user
        for listener in list(self._listeners):
            listener(user)
