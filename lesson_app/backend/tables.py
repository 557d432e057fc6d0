"""Closed set of tables and the pydantic row model of each."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Table(str, Enum):
    PRESENTATIONS = "presentations"
    SLIDES = "slides"
    PRESENTATION_SESSIONS = "presentation_sessions"
    SESSION_PARTICIPANTS = "session_participants"
    STUDENT_ANSWERS = "student_answers"
    USER_SETTINGS = "user_settings"
    PROFILES = "profiles"
    CHAT_MESSAGES = "chat_messages"


class _Row(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PresentationRow(_Row):
    id: str = Field(default_factory=_new_id)
    title: str
    user_id: str
    is_public: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class SlideRow(_Row):
    id: str = Field(default_factory=_new_id)
    presentation_id: str
    slide_order: int = Field(ge=0)
    content: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class PresentationSessionRow(_Row):
    id: str = Field(default_factory=_new_id)
    presentation_id: str
    join_code: str
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None
    current_slide: int = Field(default=0, ge=0)
    is_synced: bool = True
    is_paused: bool = False
    anonymous_mode: bool = False
    student_pacing_enabled: bool = False
    paced_slides: list[int] = Field(default_factory=list)


class SessionParticipantRow(_Row):
    id: str = Field(default_factory=_new_id)
    session_id: str
    user_id: str
    current_slide: int = Field(default=0, ge=0)
    is_active: bool = True
    joined_at: datetime = Field(default_factory=utc_now)
    last_active_at: datetime = Field(default_factory=utc_now)


class StudentAnswerRow(_Row):
    id: str = Field(default_factory=_new_id)
    session_id: str
    slide_id: str
    content_id: str
    user_id: str
    answer: str
    is_correct: bool | None = None
    submitted_at: datetime = Field(default_factory=utc_now)


class UserSettingsRow(_Row):
    id: str = Field(default_factory=_new_id)
    user_id: str
    settings: dict[str, Any] = Field(default_factory=dict)
    tts_settings: dict[str, Any] = Field(default_factory=dict)
    celebration_settings: dict[str, Any] = Field(default_factory=dict)
    ai_settings: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utc_now)


class ProfileRow(_Row):
    id: str
    name: str = ""
    email: str = ""
    role: str = "student"


class ChatMessageRow(_Row):
    id: str = Field(default_factory=_new_id)
    session_id: str
    slide_id: str
    user_id: str
    role: str
    content: str
    created_at: datetime = Field(default_factory=utc_now)


ROW_MODELS: dict[Table, type[_Row]] = {
    Table.PRESENTATIONS: PresentationRow,
    Table.SLIDES: SlideRow,
    Table.PRESENTATION_SESSIONS: PresentationSessionRow,
    Table.SESSION_PARTICIPANTS: SessionParticipantRow,
    Table.STUDENT_ANSWERS: StudentAnswerRow,
    Table.USER_SETTINGS: UserSettingsRow,
    Table.PROFILES: ProfileRow,
    Table.CHAT_MESSAGES: ChatMessageRow,
}
