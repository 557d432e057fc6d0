"""Session lifecycle, joining, navigation and answers."""

import pytest

from lesson_app.backend.client import eq
from lesson_app.backend.tables import Table
from lesson_app.constants.session_constants import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH
from lesson_app.core.errors import (
    BackendError,
    InvalidInputError,
    NavigationRefusedError,
    NotFoundError,
    NotParticipantError,
    SessionNotFoundError,
    SessionPausedError,
)


class TestLifecycle:
    def test_start_generates_join_code(self, session, lesson):
        assert len(session.join_code) == JOIN_CODE_LENGTH
        assert set(session.join_code) <= set(JOIN_CODE_ALPHABET)
        assert session.presentation_id == lesson.id
        assert session.is_synced is True
        assert session.ended_at is None

    def test_start_for_unknown_lesson(self, services):
        with pytest.raises(NotFoundError):
            services.sessions.start_presentation_session("missing")

    def test_active_session_lookup(self, services, lesson, session):
        assert services.sessions.get_active_session_for_lesson(lesson.id).id == session.id
        services.sessions.end_presentation_session(session.id)
        assert services.sessions.get_active_session_for_lesson(lesson.id) is None

    def test_end_marks_participants_inactive_and_keeps_answers(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        services.sessions.submit_answer(session.id, _slide_id(services, session, 0), "q-half", student.id, "0.5")
        services.sessions.end_presentation_session(session.id)

        assert services.sessions.get_session(session.id).ended_at is not None
        assert services.sessions.get_participant(session.id, student.id).is_active is False
        assert len(services.sessions.get_session_answers(session.id)) == 1

    def test_join_code_collisions_give_up(self, services, lesson, monkeypatch):
        monkeypatch.setattr(services.sessions, "find_active_session", lambda code: object())
        with pytest.raises(BackendError):
            services.sessions.start_presentation_session(lesson.id)


class TestJoining:
    def test_join_is_case_insensitive(self, services, session, student):
        joined = services.sessions.join_presentation_session(f"  {session.join_code.lower()} ", student.id)
        assert joined.session_id == session.id
        assert joined.presentation_id == session.presentation_id

    def test_join_twice_keeps_one_row(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        services.sessions.leave_presentation_session(session.id, student.id)
        services.sessions.join_presentation_session(session.join_code, student.id)
        participants = services.sessions.get_session_participants(session.id)
        assert len(participants) == 1
        assert participants[0].is_active is True

    def test_join_starts_on_the_session_slide(self, services, session, student):
        services.sessions.update_session_slide(session.id, 2)
        services.sessions.join_presentation_session(session.join_code, student.id)
        assert services.sessions.get_participant(session.id, student.id).current_slide == 2

    def test_join_rejects_empty_code(self, services, student):
        with pytest.raises(InvalidInputError):
            services.sessions.join_presentation_session("   ", student.id)

    def test_join_unknown_code(self, services, student):
        with pytest.raises(SessionNotFoundError) as info:
            services.sessions.join_presentation_session("zzzzzz", student.id)
        assert info.value.join_code == "ZZZZZZ"

    def test_join_ended_session(self, services, session, student):
        services.sessions.end_presentation_session(session.id)
        with pytest.raises(SessionNotFoundError):
            services.sessions.join_presentation_session(session.join_code, student.id)


class TestSlides:
    def test_synced_session_moves_everyone(self, services, session, make_student):
        for name in ("Alan Turing", "Barbara Liskov"):
            services.sessions.join_presentation_session(session.join_code, make_student(name).id)
        services.sessions.update_session_slide(session.id, 1)
        assert {p.current_slide for p in services.sessions.get_session_participants(session.id)} == {1}

    def test_unsynced_session_leaves_students(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        services.sessions.update_session_flags(session.id, is_synced=False)
        services.sessions.update_session_slide(session.id, 2)
        assert services.sessions.get_participant(session.id, student.id).current_slide == 0

    def test_negative_slide(self, services, session):
        with pytest.raises(InvalidInputError):
            services.sessions.update_session_slide(session.id, -1)

    def test_student_navigation_refused_while_synced(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        with pytest.raises(NavigationRefusedError):
            services.sessions.update_student_slide(session.id, student.id, 1)

    def test_student_navigation_when_free(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        services.sessions.update_session_flags(session.id, is_synced=False)
        services.sessions.update_student_slide(session.id, student.id, 2)
        assert services.sessions.get_participant(session.id, student.id).current_slide == 2

    def test_student_navigation_respects_pacing(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        services.sessions.update_session_flags(
            session.id, is_synced=False, student_pacing_enabled=True, paced_slides=[0, 2]
        )
        services.sessions.update_student_slide(session.id, student.id, 2)
        with pytest.raises(NavigationRefusedError):
            services.sessions.update_student_slide(session.id, student.id, 1)

    def test_student_navigation_out_of_range(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        services.sessions.update_session_flags(session.id, is_synced=False)
        with pytest.raises(NavigationRefusedError):
            services.sessions.update_student_slide(session.id, student.id, 3)

    def test_student_not_joined(self, services, session, student):
        services.sessions.update_session_flags(session.id, is_synced=False)
        with pytest.raises(NotFoundError):
            services.sessions.update_student_slide(session.id, student.id, 1)


class TestFlags:
    def test_unknown_flag(self, services, session):
        with pytest.raises(InvalidInputError):
            services.sessions.update_session_flags(session.id, is_loud=True)

    def test_paced_slides_are_sorted_and_unique(self, services, session):
        updated = services.sessions.update_session_flags(session.id, paced_slides=[2, 0, 2])
        assert updated.paced_slides == [0, 2]

    def test_negative_paced_slide(self, services, session):
        with pytest.raises(InvalidInputError):
            services.sessions.update_session_flags(session.id, paced_slides=[-1])

    def test_unknown_session(self, services):
        with pytest.raises(NotFoundError):
            services.sessions.update_session_flags("missing", is_paused=True)


class TestAnswers:
    @pytest.fixture(autouse=True)
    def _joined(self, services, session, student):
        services.sessions.join_presentation_session(session.join_code, student.id)

    def test_multiple_choice_is_graded(self, services, session, student):
        slide_id = _slide_id(services, session, 0)
        assert services.sessions.submit_answer(session.id, slide_id, "q-half", student.id, "0.5").is_correct is True
        assert services.sessions.submit_answer(session.id, slide_id, "q-half", student.id, 0).is_correct is False

    def test_true_false_is_graded(self, services, session, student):
        slide_id = _slide_id(services, session, 1)
        row = services.sessions.submit_answer(session.id, slide_id, "q-tf", student.id, True)
        assert row.is_correct is True
        assert row.answer == "true"

    def test_free_response_waits_for_teacher(self, services, session, student):
        slide_id = _slide_id(services, session, 2)
        row = services.sessions.submit_answer(session.id, slide_id, "q-free", student.id, "Because")
        assert row.is_correct is None
        assert services.sessions.evaluate_answer(row.id, True).is_correct is True

    def test_repeated_attempts_are_kept(self, services, session, student):
        slide_id = _slide_id(services, session, 0)
        services.sessions.submit_answer(session.id, slide_id, "q-half", student.id, "0.25")
        services.sessions.submit_answer(session.id, slide_id, "q-half", student.id, "0.5")
        assert [a.is_correct for a in services.sessions.get_session_answers(session.id)] == [False, True]

    def test_empty_answer(self, services, session, student):
        with pytest.raises(InvalidInputError):
            services.sessions.submit_answer(session.id, "slide", "q-half", student.id, "  ")

    def test_paused_session_refuses_answers(self, services, session, student):
        services.sessions.update_session_flags(session.id, is_paused=True)
        with pytest.raises(SessionPausedError):
            services.sessions.submit_answer(session.id, _slide_id(services, session, 0), "q-half", student.id, "0.5")

    def test_unknown_slide_is_refused(self, services, session, student):
        with pytest.raises(NotFoundError):
            services.sessions.submit_answer(session.id, "no-slide", "q-half", student.id, "0.5")
        assert services.sessions.get_session_answers(session.id) == []

    def test_unknown_question_is_refused(self, services, session, student):
        with pytest.raises(NotFoundError):
            services.sessions.submit_answer(session.id, _slide_id(services, session, 0), "intro-text", student.id, "hi")
        assert services.sessions.get_session_answers(session.id) == []

    def test_slide_of_another_lesson_is_refused(self, services, session, student, teacher):
        other = services.lessons.create_lesson(teacher.id, "Other")
        with pytest.raises(NotFoundError):
            services.sessions.submit_answer(session.id, other.slides[0].id, "q-half", student.id, "0.5")
        assert services.sessions.get_session_answers(session.id) == []

    def test_only_participants_may_answer(self, services, session, make_student):
        outsider = make_student("Alan Turing")
        with pytest.raises(NotParticipantError):
            services.sessions.submit_answer(session.id, _slide_id(services, session, 0), "q-half", outsider.id, "0.5")
        assert services.sessions.get_session_answers(session.id) == []
        assert services.sessions.get_participant(session.id, outsider.id) is None

    def test_students_who_left_may_not_answer(self, services, session, student):
        services.sessions.leave_presentation_session(session.id, student.id)
        with pytest.raises(NotParticipantError):
            services.sessions.submit_answer(session.id, _slide_id(services, session, 0), "q-half", student.id, "0.5")

    def test_evaluate_unknown_answer(self, services):
        with pytest.raises(NotFoundError):
            services.sessions.evaluate_answer("missing", True)

    def test_profiles(self, services, student, teacher):
        profiles = services.sessions.get_profiles([student.id, student.id, "missing"])
        assert list(profiles) == [student.id]
        assert profiles[student.id].name == "Grace Hopper"
        assert services.sessions.get_profiles([]) == {}


def _slide_id(services, session, index):
    rows = services.backend.select(
        Table.SLIDES, [eq("presentation_id", session.presentation_id)], order_by="slide_order"
    )
    return rows[index]["id"]
