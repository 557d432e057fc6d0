"""Rules deciding where a student may be inside a live session."""

from __future__ import annotations

from lesson_app.backend.tables import PresentationSessionRow, SessionParticipantRow


def is_session_open(session: PresentationSessionRow) -> bool:
    return session.ended_at is None


def can_student_navigate(session: PresentationSessionRow, index: int, slide_count: int) -> bool:
    """Return True when a student may move to slide ``index`` on their own."""

    if not 0 <= index < slide_count:
        return False
    if not is_session_open(session) or session.is_paused or session.is_synced:
        return False
    if session.student_pacing_enabled and index not in session.paced_slides:
        return False
    return True


def allowed_slides(session: PresentationSessionRow, slide_count: int) -> list[int]:
    return [index for index in range(slide_count) if can_student_navigate(session, index, slide_count)]


def effective_slide(
    session: PresentationSessionRow, participant: SessionParticipantRow | None
) -> int:
    """The slide a student is shown: the teacher's while synced, else their own."""

    if session.is_synced or participant is None:
        return session.current_slide
    return participant.current_slide


def accepts_answers(session: PresentationSessionRow) -> bool:
    return is_session_open(session) and not session.is_paused
