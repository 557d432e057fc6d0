"""Shared fixtures: one in-memory SQLite backend per test with a seeded lesson."""

import pytest

from lesson_app.backend.sql_backend import SqlBackend
from lesson_app.core.app_services import build_services
from lesson_app.core.lesson_editor import LessonEditor, new_block
from lesson_app.core.models import BlockType, UserRole


@pytest.fixture
def backend():
    backend = SqlBackend.from_url("sqlite://", public_base_url="http://classroom.test")
    yield backend
    backend.database.dispose()


@pytest.fixture
def services(backend):
    return build_services(backend)


@pytest.fixture
def teacher(backend):
    return backend.auth.register("teacher@school.test", "secret-pass", role=UserRole.TEACHER, name="Ada Teacher")


@pytest.fixture
def make_student(backend):
    def _make(name, email=None):
        email = email or f"{name.lower().replace(' ', '.')}@school.test"
        return backend.auth.register(email, "student-pass", role=UserRole.STUDENT, name=name)

    return _make


@pytest.fixture
def student(make_student):
    return make_student("Grace Hopper")


@pytest.fixture
def lesson(services, teacher):
    """Three slides: text + multiple choice, true/false, free response."""
    lesson = services.lessons.create_lesson(teacher.id, "Fractions")
    editor = LessonEditor(lesson)
    editor.rename_slide(0, "Intro")
    editor.add_block(0, new_block(BlockType.TEXT, id="intro-text", content="What is $\\frac{1}{2}$?"))
    editor.add_block(
        0,
        new_block(
            BlockType.QUESTION,
            id="q-half",
            question="Pick one half",
            options=["0.25", "0.5", "0.75"],
            correct_answer="0.5",
        ),
    )
    editor.add_slide("True or false")
    editor.add_block(
        1,
        new_block(
            BlockType.QUESTION,
            id="q-tf",
            question_type="true-false",
            question="2/4 equals 1/2",
            options=[],
            correct_answer=True,
        ),
    )
    editor.add_slide("Explain")
    editor.add_block(
        2,
        new_block(
            BlockType.QUESTION,
            id="q-free",
            question_type="free-response",
            question="Explain why",
            options=[],
        ),
    )
    return services.lessons.save_lesson(editor.lesson)


@pytest.fixture
def session(services, lesson):
    return services.sessions.start_presentation_session(lesson.id)
