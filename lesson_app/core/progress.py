"""Per-student progress and the teacher's progress grid."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence

from lesson_app.backend.tables import ProfileRow, SessionParticipantRow, StudentAnswerRow
from lesson_app.constants.session_constants import ANONYMOUS_LABEL_TEMPLATE
from lesson_app.core.models import LessonSlide, StudentProgress, StudentResponse

UNKNOWN_STUDENT_NAME = "Unknown student"


class SlideStatus(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    MIXED = "mixed"


class SortKey(str, Enum):
    LAST_NAME = "last_name"
    FIRST_NAME = "first_name"
    JOIN_TIME = "join_time"


@dataclass(slots=True)
class ProgressCell:
    slide_id: str
    slide_index: int
    status: SlideStatus
    is_current: bool


@dataclass(slots=True)
class ProgressRow:
    student_id: str
    label: str
    current_slide: int
    cells: list[ProgressCell] = field(default_factory=list)


def derive_slide_status(responses: Iterable[StudentResponse]) -> SlideStatus:
    """Summarize a student's responses on one slide.

    Any response still waiting for a verdict makes the slide pending, even when
    others were already graded.
    """

    verdicts = [response.is_correct for response in responses]
    if not verdicts:
        return SlideStatus.NOT_ATTEMPTED
    if any(verdict is None for verdict in verdicts):
        return SlideStatus.PENDING
    if all(verdicts):
        return SlideStatus.CORRECT
    if not any(verdicts):
        return SlideStatus.INCORRECT
    return SlideStatus.MIXED


def response_from_row(row: StudentAnswerRow, lesson_id: str) -> StudentResponse:
    return StudentResponse(
        student_id=row.user_id,
        lesson_id=lesson_id,
        slide_id=row.slide_id,
        block_id=row.content_id,
        response=row.answer,
        is_correct=row.is_correct,
        timestamp=row.submitted_at,
    )


def display_name(profile: ProfileRow | None) -> str:
    if profile is None:
        return UNKNOWN_STUDENT_NAME
    return profile.name.strip() or profile.email or UNKNOWN_STUDENT_NAME


def build_student_progress(
    participants: Sequence[SessionParticipantRow],
    answers: Sequence[StudentAnswerRow],
    profiles: Mapping[str, ProfileRow],
    lesson_id: str,
) -> list[StudentProgress]:
    responses_by_student: dict[str, list[StudentResponse]] = {}
    for answer in sorted(answers, key=lambda row: row.submitted_at):
        responses_by_student.setdefault(answer.user_id, []).append(response_from_row(answer, lesson_id))

    progress: list[StudentProgress] = []
    for participant in participants:
        responses = responses_by_student.get(participant.user_id, [])
        progress.append(
            StudentProgress(
                student_id=participant.user_id,
                student_name=display_name(profiles.get(participant.user_id)),
                lesson_id=lesson_id,
                current_slide=participant.current_slide,
                completed_blocks=list(dict.fromkeys(response.block_id for response in responses)),
                responses=responses,
                joined_at=participant.joined_at,
            )
        )
    return progress


def _join_key(student: StudentProgress) -> float:
    return student.joined_at.timestamp() if student.joined_at else float("inf")


def _sort_key(key: SortKey):
    if key is SortKey.FIRST_NAME:
        return lambda s: (s.student_name.casefold(), _join_key(s), s.student_id)
    if key is SortKey.LAST_NAME:
        def by_last_name(s: StudentProgress):
            parts = s.student_name.split()
            last = parts[-1] if parts else ""
            return (last.casefold(), s.student_name.casefold(), _join_key(s), s.student_id)

        return by_last_name
    return lambda s: (_join_key(s), s.student_id)


def sort_students(progress: Iterable[StudentProgress], sort_key: SortKey) -> list[StudentProgress]:
    return sorted(progress, key=_sort_key(sort_key))


def build_progress_grid(
    progress: Iterable[StudentProgress],
    slides: Sequence[LessonSlide],
    *,
    anonymous: bool,
    sort_key: SortKey = SortKey.LAST_NAME,
) -> list[ProgressRow]:
    """Rows for the grid, sorted by real names whether or not names are shown.

    With ``anonymous`` set, only the labels change; row order and
    ``student_id`` stay the same.
    """

    rows: list[ProgressRow] = []
    for position, student in enumerate(sort_students(progress, sort_key), start=1):
        label = (
            ANONYMOUS_LABEL_TEMPLATE.format(position=position) if anonymous else student.student_name
        )
        cells = [
            ProgressCell(
                slide_id=slide.id,
                slide_index=index,
                status=derive_slide_status(r for r in student.responses if r.slide_id == slide.id),
                is_current=student.current_slide == index,
            )
            for index, slide in enumerate(slides)
        ]
        rows.append(
            ProgressRow(
                student_id=student.student_id,
                label=label,
                current_slide=student.current_slide,
                cells=cells,
            )
        )
    return rows
