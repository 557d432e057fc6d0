"""Network configuration constants for the lesson application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
STUDENT_POLL_INTERVAL_MS: int = 2000
AUTH_COOKIE: str = "lessonqt_access_token"
PENDING_JOIN_COOKIE: str = "lessonqt_pending_join_code"
AUTH_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 12
