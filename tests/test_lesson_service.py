"""Lesson persistence."""

import pytest

from lesson_app.backend.client import eq
from lesson_app.backend.tables import Table
from lesson_app.core.errors import NotFoundError
from lesson_app.core.lesson_editor import LessonEditor
from lesson_app.core.models import QuestionBlock


class TestLessonService:
    def test_create_lesson_has_a_starter_slide(self, services, teacher):
        lesson = services.lessons.create_lesson(teacher.id, "  Algebra ")
        assert lesson.title == "Algebra"
        assert lesson.created_by == teacher.id
        assert [slide.title for slide in lesson.slides] == ["Untitled Slide"]

    def test_blank_title_uses_default(self, services, teacher):
        assert services.lessons.create_lesson(teacher.id, " ").title == "New Lesson"

    def test_lessons_for_user_only(self, services, teacher, student):
        services.lessons.create_lesson(teacher.id, "Mine")
        services.lessons.create_lesson(student.id, "Theirs")
        assert [lesson.title for lesson in services.lessons.get_lessons_for_user(teacher.id)] == ["Mine"]

    def test_load_missing_lesson(self, services):
        assert services.lessons.get_lesson_by_id("missing") is None

    def test_saved_blocks_come_back(self, services, lesson):
        loaded = services.lessons.get_lesson_by_id(lesson.id)
        assert [slide.title for slide in loaded.slides] == ["Intro", "True or false", "Explain"]
        question = loaded.slides[0].blocks[1]
        assert isinstance(question, QuestionBlock)
        assert question.correct_answer == "0.5"

    def test_save_follows_slide_order_and_removals(self, services, lesson):
        editor = LessonEditor(services.lessons.get_lesson_by_id(lesson.id))
        removed = editor.remove_slide(1)
        editor.move_slide(1, 0)
        services.lessons.save_lesson(editor.lesson)

        loaded = services.lessons.get_lesson_by_id(lesson.id)
        assert [slide.title for slide in loaded.slides] == ["Explain", "Intro"]
        assert services.backend.select_one(Table.SLIDES, [eq("id", removed.id)]) is None

    def test_save_unknown_lesson(self, services, lesson):
        lesson.id = "missing"
        with pytest.raises(NotFoundError):
            services.lessons.save_lesson(lesson)

    def test_delete_ends_running_sessions(self, services, lesson, session):
        services.lessons.delete_lesson(lesson.id)
        assert services.lessons.get_lesson_by_id(lesson.id) is None
        assert services.backend.select(Table.SLIDES, [eq("presentation_id", lesson.id)]) == []
        assert services.sessions.get_session(session.id).ended_at is not None
