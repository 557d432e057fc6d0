"""Error taxonomy shared by the services, the join flow and the views."""

from __future__ import annotations


class LessonAppError(Exception):
    """Base class for errors raised by LessonQt."""


class BackendError(LessonAppError):
    """Raised when the backend rejects a request or cannot be reached."""


class NotFoundError(LessonAppError):
    """Raised when an operation requires a row that does not exist."""


class SessionNotFoundError(NotFoundError):
    """Raised when a join code matches no active session."""

    def __init__(self, join_code: str) -> None:
        super().__init__(f"No active session for join code '{join_code}'.")
        self.join_code = join_code


class InvalidInputError(LessonAppError, ValueError):
    """Raised for input that is rejected before any backend call."""


class InvalidCredentialError(LessonAppError):
    """Raised when credentials are missing or wrong."""


class NavigationRefusedError(LessonAppError):
    """Raised when a student may not move to the requested slide."""


class SessionPausedError(LessonAppError):
    """Raised when a paused or ended session receives student input."""


class NotParticipantError(LessonAppError):
    """Raised when a user acts in a session they have not joined."""


class AIServiceError(LessonAppError):
    """Raised when the classroom assistant is off, unconfigured or failing."""
