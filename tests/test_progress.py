"""Progress derivation and the teacher grid."""

from datetime import datetime, timedelta, timezone

from lesson_app.backend.tables import ProfileRow, SessionParticipantRow, StudentAnswerRow
from lesson_app.core.models import LessonSlide, StudentResponse
from lesson_app.core.progress import (
    UNKNOWN_STUDENT_NAME,
    SlideStatus,
    SortKey,
    build_progress_grid,
    build_student_progress,
    derive_slide_status,
)

START = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
SLIDES = [LessonSlide(id="s0", title="A"), LessonSlide(id="s1", title="B")]


def _response(is_correct, slide_id="s0"):
    return StudentResponse(
        student_id="u",
        lesson_id="l",
        slide_id=slide_id,
        block_id="q",
        response="x",
        is_correct=is_correct,
        timestamp=START,
    )


def _participant(user_id, minutes, current_slide=0):
    return SessionParticipantRow(
        session_id="sess",
        user_id=user_id,
        current_slide=current_slide,
        joined_at=START + timedelta(minutes=minutes),
    )


def _answer(user_id, slide_id, is_correct, minutes=0, block_id="q"):
    return StudentAnswerRow(
        session_id="sess",
        slide_id=slide_id,
        content_id=block_id,
        user_id=user_id,
        answer="x",
        is_correct=is_correct,
        submitted_at=START + timedelta(minutes=minutes),
    )


PROFILES = {
    "u1": ProfileRow(id="u1", name="Grace Hopper"),
    "u2": ProfileRow(id="u2", name="Alan Turing"),
    "u3": ProfileRow(id="u3", name="Ada Lovelace"),
}


class TestSlideStatus:
    def test_not_attempted(self):
        assert derive_slide_status([]) is SlideStatus.NOT_ATTEMPTED

    def test_pending_wins(self):
        assert derive_slide_status([_response(True), _response(None)]) is SlideStatus.PENDING

    def test_correct_incorrect_mixed(self):
        assert derive_slide_status([_response(True), _response(True)]) is SlideStatus.CORRECT
        assert derive_slide_status([_response(False)]) is SlideStatus.INCORRECT
        assert derive_slide_status([_response(True), _response(False)]) is SlideStatus.MIXED


class TestStudentProgress:
    def test_responses_grouped_by_student(self):
        participants = [_participant("u1", 0), _participant("u2", 1)]
        answers = [
            _answer("u1", "s0", True, minutes=2, block_id="q2"),
            _answer("u1", "s0", False, minutes=1),
            _answer("u1", "s1", None, minutes=3),
        ]
        progress = build_student_progress(participants, answers, PROFILES, "l1")
        first, second = progress
        assert first.student_name == "Grace Hopper"
        assert [r.block_id for r in first.responses] == ["q", "q2", "q"]
        assert first.completed_blocks == ["q", "q2"]
        assert second.responses == []

    def test_unknown_profile(self):
        progress = build_student_progress([_participant("ghost", 0)], [], PROFILES, "l1")
        assert progress[0].student_name == UNKNOWN_STUDENT_NAME

    def test_email_when_name_missing(self):
        profiles = {"u9": ProfileRow(id="u9", email="kid@school.test")}
        progress = build_student_progress([_participant("u9", 0)], [], profiles, "l1")
        assert progress[0].student_name == "kid@school.test"


class TestProgressGrid:
    def _progress(self):
        participants = [_participant("u1", 0, current_slide=1), _participant("u2", 5), _participant("u3", 2)]
        answers = [_answer("u1", "s0", True), _answer("u2", "s1", False)]
        return build_student_progress(participants, answers, PROFILES, "l1")

    def test_sort_by_last_name(self):
        rows = build_progress_grid(self._progress(), SLIDES, anonymous=False)
        assert [row.label for row in rows] == ["Grace Hopper", "Ada Lovelace", "Alan Turing"]

    def test_sort_by_first_name_and_join_time(self):
        rows = build_progress_grid(self._progress(), SLIDES, anonymous=False, sort_key=SortKey.FIRST_NAME)
        assert [row.student_id for row in rows] == ["u3", "u2", "u1"]
        rows = build_progress_grid(self._progress(), SLIDES, anonymous=False, sort_key=SortKey.JOIN_TIME)
        assert [row.student_id for row in rows] == ["u1", "u3", "u2"]

    def test_anonymous_mode_changes_labels_only(self):
        named = build_progress_grid(self._progress(), SLIDES, anonymous=False)
        anonymous = build_progress_grid(self._progress(), SLIDES, anonymous=True)
        assert [row.student_id for row in anonymous] == [row.student_id for row in named]
        assert [row.label for row in anonymous] == ["Student 1", "Student 2", "Student 3"]

    def test_cells(self):
        rows = {row.student_id: row for row in build_progress_grid(self._progress(), SLIDES, anonymous=False)}
        grace = rows["u1"]
        assert [cell.status for cell in grace.cells] == [SlideStatus.CORRECT, SlideStatus.NOT_ATTEMPTED]
        assert [cell.is_current for cell in grace.cells] == [False, True]
        assert rows["u2"].cells[1].status is SlideStatus.INCORRECT
