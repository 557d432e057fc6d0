"""Live presentation sessions: lifecycle, participants and answers."""

from __future__ import annotations

import logging
import secrets
from typing import Any, Iterable

from lesson_app.backend.client import BackendClient, eq, in_, is_null
from lesson_app.backend.tables import (
    PresentationSessionRow,
    ProfileRow,
    SessionParticipantRow,
    SlideRow,
    StudentAnswerRow,
    Table,
    utc_now,
)
from lesson_app.constants.session_constants import (
    JOIN_CODE_ALPHABET,
    JOIN_CODE_LENGTH,
    JOIN_CODE_MAX_ATTEMPTS,
)
from lesson_app.core.errors import (
    BackendError,
    InvalidInputError,
    NavigationRefusedError,
    NotFoundError,
    NotParticipantError,
    SessionNotFoundError,
    SessionPausedError,
)
from lesson_app.core.grading import grade_answer, normalize_answer
from lesson_app.core.models import AnswerValue, JoinedSession, QuestionBlock, slide_from_content
from lesson_app.core.navigation import accepts_answers, can_student_navigate

logger = logging.getLogger(__name__)

SESSION_FLAGS = frozenset(
    {"is_synced", "is_paused", "anonymous_mode", "student_pacing_enabled", "paced_slides"}
)


def normalize_join_code(code: str | None) -> str:
    return (code or "").strip().upper()


class SessionService:
    """Writes every live-session change through the backend.

    Failures from the backend are logged and re-raised as ``BackendError``.
    """

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    # -- lifecycle -----------------------------------------------------------

    def start_presentation_session(self, lesson_id: str) -> PresentationSessionRow:
        try:
            if self._backend.select_one(Table.PRESENTATIONS, [eq("id", lesson_id)]) is None:
                raise NotFoundError(f"Lesson {lesson_id} does not exist.")
            join_code = self._generate_join_code()
            row = self._backend.insert(
                Table.PRESENTATION_SESSIONS,
                {"presentation_id": lesson_id, "join_code": join_code},
            )
        except BackendError:
            logger.exception("Failed to start a session for lesson %s", lesson_id)
            raise
        logger.info("Started session %s for lesson %s with code %s", row["id"], lesson_id, join_code)
        return PresentationSessionRow.model_validate(row)

    def end_presentation_session(self, session_id: str) -> None:
        """Mark the session ended and every participant inactive. Answers are kept."""

        try:
            updated = self._backend.update(
                Table.PRESENTATION_SESSIONS,
                {"ended_at": utc_now()},
                [eq("id", session_id), is_null("ended_at")],
            )
            self._backend.update(
                Table.SESSION_PARTICIPANTS, {"is_active": False}, [eq("session_id", session_id)]
            )
        except BackendError:
            logger.exception("Failed to end session %s", session_id)
            raise
        if updated:
            logger.info("Ended session %s", session_id)
        else:
            logger.warning("Session %s was already ended or does not exist", session_id)

    def get_session(self, session_id: str) -> PresentationSessionRow | None:
        try:
            row = self._backend.select_one(Table.PRESENTATION_SESSIONS, [eq("id", session_id)])
        except BackendError:
            logger.exception("Failed to load session %s", session_id)
            raise
        return PresentationSessionRow.model_validate(row) if row else None

    def get_active_session_for_lesson(self, lesson_id: str) -> PresentationSessionRow | None:
        try:
            rows = self._backend.select(
                Table.PRESENTATION_SESSIONS,
                [eq("presentation_id", lesson_id), is_null("ended_at")],
                order_by="started_at",
                descending=True,
                limit=1,
            )
        except BackendError:
            logger.exception("Failed to look up the active session for lesson %s", lesson_id)
            raise
        return PresentationSessionRow.model_validate(rows[0]) if rows else None

    # -- joining -------------------------------------------------------------

    def find_active_session(self, join_code: str) -> PresentationSessionRow | None:
        code = normalize_join_code(join_code)
        rows = self._backend.select(
            Table.PRESENTATION_SESSIONS,
            [eq("join_code", code), is_null("ended_at")],
            order_by="started_at",
            descending=True,
            limit=1,
        )
        return PresentationSessionRow.model_validate(rows[0]) if rows else None

    def join_presentation_session(self, join_code: str, user_id: str) -> JoinedSession:
        """Register ``user_id`` in the active session for ``join_code``.

        Joining twice updates the existing participant row instead of adding a
        second one.
        """

        code = normalize_join_code(join_code)
        if not code:
            raise InvalidInputError("Please enter a join code.")
        if not user_id:
            raise InvalidInputError("A signed-in user is required to join a session.")

        try:
            session = self.find_active_session(code)
            if session is None:
                raise SessionNotFoundError(code)
            existing = self._backend.select_one(
                Table.SESSION_PARTICIPANTS,
                [eq("session_id", session.id), eq("user_id", user_id)],
            )
            now = utc_now()
            values: dict[str, Any] = {
                "session_id": session.id,
                "user_id": user_id,
                "is_active": True,
                "last_active_at": now,
            }
            if existing is None:
                values.update(current_slide=session.current_slide, joined_at=now)
            self._backend.upsert(
                Table.SESSION_PARTICIPANTS, [values], on_conflict=("session_id", "user_id")
            )
        except BackendError:
            logger.exception("Failed to join session with code %s", code)
            raise
        logger.info("User %s joined session %s", user_id, session.id)
        return JoinedSession(session_id=session.id, presentation_id=session.presentation_id)

    def leave_presentation_session(self, session_id: str, user_id: str) -> None:
        try:
            self._backend.update(
                Table.SESSION_PARTICIPANTS,
                {"is_active": False, "last_active_at": utc_now()},
                [eq("session_id", session_id), eq("user_id", user_id)],
            )
        except BackendError:
            logger.exception("Failed to mark user %s inactive in session %s", user_id, session_id)
            raise

    # -- slides --------------------------------------------------------------

    def update_session_slide(self, session_id: str, slide_index: int) -> PresentationSessionRow:
        """Move the session to ``slide_index``; synced participants follow."""

        if slide_index < 0:
            raise InvalidInputError("Slide index cannot be negative.")
        try:
            rows = self._backend.update(
                Table.PRESENTATION_SESSIONS, {"current_slide": slide_index}, [eq("id", session_id)]
            )
            if not rows:
                raise NotFoundError(f"Session {session_id} does not exist.")
            session = PresentationSessionRow.model_validate(rows[0])
            if session.is_synced:
                self._move_participants(session_id, slide_index)
        except BackendError:
            logger.exception("Failed to move session %s to slide %s", session_id, slide_index)
            raise
        return session

    def move_all_participants(self, session_id: str, slide_index: int) -> None:
        try:
            self._move_participants(session_id, slide_index)
        except BackendError:
            logger.exception("Failed to move participants of session %s", session_id)
            raise

    def update_student_slide(self, session_id: str, user_id: str, slide_index: int) -> None:
        """Move one student, refusing moves the session does not allow."""

        session = self._require_session(session_id)
        slide_count = self.count_slides(session.presentation_id)
        if not can_student_navigate(session, slide_index, slide_count):
            logger.info(
                "Refused navigation of user %s to slide %s in session %s", user_id, slide_index, session_id
            )
            raise NavigationRefusedError(f"Navigation to slide {slide_index + 1} is not allowed right now.")
        try:
            rows = self._backend.update(
                Table.SESSION_PARTICIPANTS,
                {"current_slide": slide_index, "last_active_at": utc_now()},
                [eq("session_id", session_id), eq("user_id", user_id)],
            )
        except BackendError:
            logger.exception("Failed to update slide of user %s in session %s", user_id, session_id)
            raise
        if not rows:
            raise NotFoundError(f"User {user_id} has not joined session {session_id}.")

    def count_slides(self, lesson_id: str) -> int:
        try:
            return len(self._backend.select(Table.SLIDES, [eq("presentation_id", lesson_id)]))
        except BackendError:
            logger.exception("Failed to count slides of lesson %s", lesson_id)
            raise

    # -- flags ---------------------------------------------------------------

    def update_session_flags(self, session_id: str, **flags: Any) -> PresentationSessionRow:
        unknown = set(flags) - SESSION_FLAGS
        if unknown:
            raise InvalidInputError(f"Unknown session flags: {sorted(unknown)}")
        if "paced_slides" in flags:
            indices = sorted(set(flags["paced_slides"]))
            if any(index < 0 for index in indices):
                raise InvalidInputError("Paced slide indices cannot be negative.")
            flags["paced_slides"] = indices
        try:
            rows = self._backend.update(Table.PRESENTATION_SESSIONS, flags, [eq("id", session_id)])
        except BackendError:
            logger.exception("Failed to update flags %s of session %s", sorted(flags), session_id)
            raise
        if not rows:
            raise NotFoundError(f"Session {session_id} does not exist.")
        logger.info("Session %s flags updated: %s", session_id, flags)
        return PresentationSessionRow.model_validate(rows[0])

    # -- answers -------------------------------------------------------------

    def submit_answer(
        self,
        session_id: str,
        slide_id: str,
        block_id: str,
        user_id: str,
        answer: AnswerValue,
    ) -> StudentAnswerRow:
        """Record an answer, grading it immediately when the question allows.

        Only active participants may answer, and only questions on slides of
        the lesson being presented.
        """

        text = normalize_answer(answer)
        if not text:
            raise InvalidInputError("Answers cannot be empty.")
        session = self._require_session(session_id)
        participant = self.get_participant(session_id, user_id)
        if participant is None or not participant.is_active:
            logger.info("Refused answer of user %s who has not joined session %s", user_id, session_id)
            raise NotParticipantError("Join the session before answering.")
        if not accepts_answers(session):
            raise SessionPausedError("The session is not accepting answers right now.")

        question = self._require_question(session, slide_id, block_id)
        is_correct = grade_answer(question, answer)
        try:
            row = self._backend.insert(
                Table.STUDENT_ANSWERS,
                {
                    "session_id": session_id,
                    "slide_id": slide_id,
                    "content_id": block_id,
                    "user_id": user_id,
                    "answer": text,
                    "is_correct": is_correct,
                },
            )
        except BackendError:
            logger.exception("Failed to store answer of user %s in session %s", user_id, session_id)
            raise
        return StudentAnswerRow.model_validate(row)

    def evaluate_answer(self, answer_id: str, is_correct: bool) -> StudentAnswerRow:
        """Teacher verdict for an answer that could not be graded automatically."""

        try:
            rows = self._backend.update(
                Table.STUDENT_ANSWERS, {"is_correct": bool(is_correct)}, [eq("id", answer_id)]
            )
        except BackendError:
            logger.exception("Failed to evaluate answer %s", answer_id)
            raise
        if not rows:
            raise NotFoundError(f"Answer {answer_id} does not exist.")
        return StudentAnswerRow.model_validate(rows[0])

    def get_session_participants(self, session_id: str) -> list[SessionParticipantRow]:
        try:
            rows = self._backend.select(
                Table.SESSION_PARTICIPANTS, [eq("session_id", session_id)], order_by="joined_at"
            )
        except BackendError:
            logger.exception("Failed to load participants of session %s", session_id)
            raise
        return [SessionParticipantRow.model_validate(row) for row in rows]

    def get_participant(self, session_id: str, user_id: str) -> SessionParticipantRow | None:
        try:
            row = self._backend.select_one(
                Table.SESSION_PARTICIPANTS, [eq("session_id", session_id), eq("user_id", user_id)]
            )
        except BackendError:
            logger.exception("Failed to load user %s in session %s", user_id, session_id)
            raise
        return SessionParticipantRow.model_validate(row) if row else None

    def get_session_answers(self, session_id: str) -> list[StudentAnswerRow]:
        try:
            rows = self._backend.select(
                Table.STUDENT_ANSWERS, [eq("session_id", session_id)], order_by="submitted_at"
            )
        except BackendError:
            logger.exception("Failed to load answers of session %s", session_id)
            raise
        return [StudentAnswerRow.model_validate(row) for row in rows]

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, ProfileRow]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        try:
            rows = self._backend.select(Table.PROFILES, [in_("id", ids)])
        except BackendError:
            logger.exception("Failed to load %d profiles", len(ids))
            raise
        return {row["id"]: ProfileRow.model_validate(row) for row in rows}

    # -- helpers -------------------------------------------------------------

    def _require_session(self, session_id: str) -> PresentationSessionRow:
        session = self.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} does not exist.")
        return session

    def _move_participants(self, session_id: str, slide_index: int) -> None:
        self._backend.update(
            Table.SESSION_PARTICIPANTS, {"current_slide": slide_index}, [eq("session_id", session_id)]
        )

    def _require_question(
        self, session: PresentationSessionRow, slide_id: str, block_id: str
    ) -> QuestionBlock:
        try:
            row = self._backend.select_one(
                Table.SLIDES, [eq("id", slide_id), eq("presentation_id", session.presentation_id)]
            )
        except BackendError:
            logger.exception("Failed to load slide %s for grading", slide_id)
            raise
        if row is None:
            logger.warning("Answer submitted for slide %s outside session %s", slide_id, session.id)
            raise NotFoundError("This slide is not part of the lesson being presented.")
        slide = slide_from_content(row["id"], SlideRow.model_validate(row).content)
        for block in slide.blocks:
            if block.id == block_id and isinstance(block, QuestionBlock):
                return block
        logger.warning("Answer submitted for unknown question %s on slide %s", block_id, slide_id)
        raise NotFoundError("This question is not on the slide.")

    def _generate_join_code(self) -> str:
        for _ in range(JOIN_CODE_MAX_ATTEMPTS):
            code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
            if self.find_active_session(code) is None:
                return code
        raise BackendError("Could not generate a unique join code.")
