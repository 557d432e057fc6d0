"""SQLAlchemy ORM models.

One model per ``Table`` with the same columns as its pydantic row model, plus
the auth and storage tables. ``pk`` is an internal insertion counter; callers
only ever see ``id``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)

from lesson_app.backend.database import Base
from lesson_app.backend.tables import Table


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _RowMixin:
    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, index=True)


class Presentation(_RowMixin, Base):
    __tablename__ = "presentations"

    title = Column(String(255), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class Slide(_RowMixin, Base):
    __tablename__ = "slides"

    presentation_id = Column(String(36), nullable=False, index=True)
    slide_order = Column(Integer, nullable=False, default=0)
    content = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class PresentationSession(_RowMixin, Base):
    __tablename__ = "presentation_sessions"

    presentation_id = Column(String(36), nullable=False, index=True)
    join_code = Column(String(20), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    current_slide = Column(Integer, nullable=False, default=0)
    is_synced = Column(Boolean, nullable=False, default=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    anonymous_mode = Column(Boolean, nullable=False, default=False)
    student_pacing_enabled = Column(Boolean, nullable=False, default=False)
    paced_slides = Column(JSON, nullable=False, default=list)


class SessionParticipant(_RowMixin, Base):
    __tablename__ = "session_participants"

    session_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    current_slide = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    last_active_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class StudentAnswer(_RowMixin, Base):
    __tablename__ = "student_answers"

    session_id = Column(String(36), nullable=False, index=True)
    slide_id = Column(String(36), nullable=False)
    content_id = Column(String(64), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class UserSettings(_RowMixin, Base):
    __tablename__ = "user_settings"

    user_id = Column(String(36), nullable=False, unique=True)
    settings = Column(JSON, nullable=False, default=dict)
    tts_settings = Column(JSON, nullable=False, default=dict)
    celebration_settings = Column(JSON, nullable=False, default=dict)
    ai_settings = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class Profile(_RowMixin, Base):
    __tablename__ = "profiles"

    name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default="student")  # student | teacher


class ChatMessage(_RowMixin, Base):
    __tablename__ = "chat_messages"

    session_id = Column(String(36), nullable=False, index=True)
    slide_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # user | assistant
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class AccessToken(Base):
    __tablename__ = "access_tokens"

    token = Column(String(64), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


class StoredObject(Base):
    __tablename__ = "stored_objects"
    __table_args__ = (UniqueConstraint("bucket", "path"),)

    pk = Column(Integer, primary_key=True, autoincrement=True)
    bucket = Column(String(64), nullable=False)
    path = Column(String(512), nullable=False)
    content_type = Column(String(128), nullable=False)
    data = Column(LargeBinary, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)


ORM_MODELS: dict[Table, type] = {
    Table.PRESENTATIONS: Presentation,
    Table.SLIDES: Slide,
    Table.PRESENTATION_SESSIONS: PresentationSession,
    Table.SESSION_PARTICIPANTS: SessionParticipant,
    Table.STUDENT_ANSWERS: StudentAnswer,
    Table.USER_SETTINGS: UserSettings,
    Table.PROFILES: Profile,
    Table.CHAT_MESSAGES: ChatMessage,
}
