"""Password authentication backed by the ``accounts`` and ``access_tokens`` tables."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import bcrypt

from lesson_app.backend.orm_models import AccessToken, Account
from lesson_app.core.errors import InvalidCredentialError, InvalidInputError
from lesson_app.core.models import AuthUser, UserRole

if TYPE_CHECKING:
    from lesson_app.backend.database import Database

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

AuthListener = Callable[[str, "AuthUser | None"], None]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def _to_user(account: Account) -> AuthUser:
    return AuthUser(id=account.id, email=account.email, role=UserRole(account.role), name=account.name)


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    user: AuthUser


class AuthDirectory:
    """Registered accounts and issued access tokens.

    Both survive a restart. ``on_register`` is called with every new user so
    the owning backend can create the matching profile row.
    """

    def __init__(self, database: "Database", on_register: Callable[[AuthUser], None] | None = None) -> None:
        self._database = database
        self._on_register = on_register

    def register(self, email: str, password: str, *, role: UserRole, name: str) -> AuthUser:
        email = email.strip().lower()
        if not email or "@" not in email:
            raise InvalidInputError("Please enter a valid email address.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"Passwords need at least {MIN_PASSWORD_LENGTH} characters."
            )
        with self._database.session() as db:
            if db.query(Account).filter(Account.email == email).first() is not None:
                raise InvalidInputError("An account with this email already exists.")
            account = Account(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=hash_password(password),
                role=UserRole(role).value,
                name=name.strip(),
            )
            db.add(account)
            user = _to_user(account)
        logger.info("Registered %s account %s", user.role.value, user.id)
        if self._on_register is not None:
            self._on_register(user)
        return user

    def authenticate(self, email: str, password: str) -> AuthSession:
        with self._database.session() as db:
            account = db.query(Account).filter(Account.email == email.strip().lower()).first()
            if account is None or not verify_password(password, account.password_hash):
                raise InvalidCredentialError("Invalid email or password.")
            token = secrets.token_urlsafe(32)
            db.add(AccessToken(token=token, user_id=account.id))
            user = _to_user(account)
        return AuthSession(access_token=token, user=user)

    def revoke(self, token: str) -> None:
        with self._database.session() as db:
            db.query(AccessToken).filter(AccessToken.token == token).delete()

    def user_for_token(self, token: str | None) -> AuthUser | None:
        if not token:
            return None
        with self._database.session() as db:
            issued = db.get(AccessToken, token)
            account = db.get(Account, issued.user_id) if issued is not None else None
            return _to_user(account) if account is not None else None


class AuthClient:
    """One consumer's view of the auth directory: a current session plus listeners."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"

    def __init__(self, directory: AuthDirectory) -> None:
        self._directory = directory
        self._session: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    def get_session(self) -> AuthSession | None:
        session = self._session
        if session is not None and self._directory.user_for_token(session.access_token) is None:
            self._session = None
            return None
        return session

    def sign_up(self, email: str, password: str, *, role: UserRole, name: str) -> AuthSession:
        self._directory.register(email, password, role=role, name=name)
        return self.sign_in_with_password(email, password)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = self._directory.authenticate(email, password)
        self._session = session
        self._emit(self.SIGNED_IN, session.user)
        return session

    def sign_out(self) -> None:
        if self._session is not None:
            self._directory.revoke(self._session.access_token)
        self._session = None
        self._emit(self.SIGNED_OUT, None)

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: str, user: AuthUser | None) -> None:
        for listener in list(self._listeners):
            listener(event, user)
