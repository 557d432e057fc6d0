"""Component listing the signed-in teacher's lessons."""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from lesson_app.constants.session_constants import DEFAULT_LESSON_TITLE
from lesson_app.constants.ui_constants import (
    LESSONS_DELETE_BUTTON,
    LESSONS_EMPTY_STATE,
    LESSONS_NEW_BUTTON,
    LESSONS_OPEN_BUTTON,
)
from lesson_app.core.errors import LessonAppError
from lesson_app.core.models import Lesson
from lesson_app.core.services.lesson_service import LessonService
from lesson_app.ui.dialog_helpers import confirm_delete_lesson, show_error

logger = logging.getLogger(__name__)


class LessonListPanel(QWidget):
    """Shows the teacher's lessons, newest first, and opens one for editing."""

    def __init__(
        self,
        lesson_service: LessonService,
        on_open_lesson: Callable[[Lesson], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.lesson_service = lesson_service
        self.on_open_lesson = on_open_lesson
        self._user_id: str | None = None
        self._lessons: list[Lesson] = []

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        action_row = QHBoxLayout()
        self.new_button = QPushButton(LESSONS_NEW_BUTTON, self)
        self.new_button.clicked.connect(self._handle_new_lesson)
        action_row.addWidget(self.new_button)

        self.open_button = QPushButton(LESSONS_OPEN_BUTTON, self)
        self.open_button.clicked.connect(self._handle_open_lesson)
        action_row.addWidget(self.open_button)

        self.delete_button = QPushButton(LESSONS_DELETE_BUTTON, self)
        self.delete_button.clicked.connect(self._handle_delete_lesson)
        action_row.addWidget(self.delete_button)
        action_row.addStretch()
        layout.addLayout(action_row)

        self.lesson_list = QListWidget(self)
        self.lesson_list.setAlternatingRowColors(True)
        self.lesson_list.itemDoubleClicked.connect(lambda _: self._handle_open_lesson())
        layout.addWidget(self.lesson_list, stretch=1)

        self.empty_label = QLabel(LESSONS_EMPTY_STATE, self)
        self.empty_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.empty_label)

    def set_user(self, user_id: str | None) -> None:
        self._user_id = user_id
        self.refresh()

    def refresh(self) -> None:
        self.lesson_list.clear()
        self._lessons = []
        if self._user_id is None:
            self.empty_label.setVisible(True)
            return
        try:
            self._lessons = self.lesson_service.get_lessons_for_user(self._user_id)
        except LessonAppError as exc:
            show_error(self, "Lessons unavailable", f"Could not load your lessons: {exc}")
            return

        for lesson in self._lessons:
            updated = lesson.updated_at.strftime("%Y-%m-%d %H:%M")
            item = QListWidgetItem(f"{lesson.title}  ({len(lesson.slides)} slides, updated {updated})")
            item.setData(Qt.UserRole, lesson.id)
            self.lesson_list.addItem(item)
        self.empty_label.setVisible(not self._lessons)
        if self._lessons:
            self.lesson_list.setCurrentRow(0)

    def selected_lesson(self) -> Lesson | None:
        row = self.lesson_list.currentRow()
        if 0 <= row < len(self._lessons):
            return self._lessons[row]
        return None

    def _handle_new_lesson(self) -> None:
        if self._user_id is None:
            return
        title, accepted = QInputDialog.getText(self, LESSONS_NEW_BUTTON, "Lesson title:", text=DEFAULT_LESSON_TITLE)
        if not accepted:
            return
        try:
            lesson = self.lesson_service.create_lesson(self._user_id, title.strip() or DEFAULT_LESSON_TITLE)
        except LessonAppError as exc:
            show_error(self, "Create failed", f"Could not create the lesson: {exc}")
            return
        self.refresh()
        self.on_open_lesson(lesson)

    def _handle_open_lesson(self) -> None:
        lesson = self.selected_lesson()
        if lesson is not None:
            self.on_open_lesson(lesson)

    def _handle_delete_lesson(self) -> None:
        lesson = self.selected_lesson()
        if lesson is None or not confirm_delete_lesson(self, lesson.title):
            return
        try:
            self.lesson_service.delete_lesson(lesson.id)
        except LessonAppError as exc:
            show_error(self, "Delete failed", f"Could not delete the lesson: {exc}")
            return
        logger.info("Deleted lesson %s", lesson.id)
        self.refresh()

    def apply_font_size(self, font_size: int) -> None:
        style = f"font-size: {font_size}pt;"
        for button in (self.new_button, self.open_button, self.delete_button):
            button.setStyleSheet(style)
        self.lesson_list.setStyleSheet(style)
