"""Qt main window with the lesson list, editor and live session modes."""

from __future__ import annotations

import logging
from enum import Enum, auto
from pathlib import Path

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from lesson_app.constants.about import (
    APP_ABOUT_TEXT,
    APP_LICENSE,
    APP_NAME,
    APP_VERSION,
    HELP_TEXT,
)
from lesson_app.constants.ui_constants import (
    EXPORT_DIALOG_TITLE,
    EXPORT_FILE_FILTER,
    IMPORT_DIALOG_TITLE,
    IMPORT_FILE_FILTER,
    LIVE_REFRESH_INTERVAL_MS,
    MODE_BUTTON_EDIT,
    MODE_BUTTON_EXPORT,
    MODE_BUTTON_IMPORT,
    MODE_BUTTON_LESSONS,
    MODE_BUTTON_PRESENT,
    MODE_BUTTON_SIGN_OUT,
    MODE_BUTTON_STOP,
    NO_LESSON_SELECTED_MESSAGE,
    STUDENT_URL_PLACEHOLDER,
    WINDOW_TITLE,
)
from lesson_app.core.app_services import AppServices
from lesson_app.core.auth_context import AuthContext
from lesson_app.core.errors import LessonAppError
from lesson_app.core.lesson_io import LessonImportError, load_lesson_from_file, save_lesson_to_file
from lesson_app.core.models import AuthUser, Lesson
from lesson_app.styling.styles import Styles
from lesson_app.ui.components.editor_panel import EditorPanel
from lesson_app.ui.components.lesson_list_panel import LessonListPanel
from lesson_app.ui.components.live_panel import LivePanel
from lesson_app.ui.dialog_helpers import show_error, show_info, show_warning
from lesson_app.ui.login_dialog import LoginDialog
from lesson_app.ui.settings_dialog import (
    DEFAULT_LIVE_FONT_SIZE,
    DEFAULT_UI_FONT_SIZE,
    LIVE_FONT_SIZE_SETTING,
    UI_FONT_SIZE_SETTING,
    SettingsDialog,
)

logger = logging.getLogger(__name__)


class TeacherMode(Enum):
    """High-level UI mode for the teacher console."""

    LESSON_LIST = auto()
    LESSON_EDITOR = auto()
    LESSON_LIVE = auto()


class TeacherMainWindow(QMainWindow):
    """Main Qt window orchestrating the three application modes."""

    def __init__(
        self,
        services: AppServices,
        auth: AuthContext,
        student_url: str | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.services = services
        self.auth = auth
        self.student_url = student_url or STUDENT_URL_PLACEHOLDER

        self._mode = TeacherMode.LESSON_LIST
        self._ui_font_size: int = DEFAULT_UI_FONT_SIZE
        self._live_font_size: int = DEFAULT_LIVE_FONT_SIZE
        self._last_export_path: Path | None = None

        self._build_ui()
        self._configure_refresh_timer()
        self.auth.add_listener(self._handle_user_changed)
        self._handle_user_changed(self.auth.user)

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self._build_mode_buttons(root_layout)

        self.mode_stack = QStackedWidget(self)

        self.lesson_list_panel = LessonListPanel(
            self.services.lessons,
            on_open_lesson=self._open_lesson_in_editor,
            parent=self,
        )
        self.editor_panel = EditorPanel(self.services.lessons, self.services.images, self)
        self.live_panel = LivePanel(
            self.services,
            self.student_url,
            on_session_ended=self._handle_session_ended,
            parent=self,
        )

        self.mode_stack.addWidget(self.lesson_list_panel)
        self.mode_stack.addWidget(self.editor_panel)
        self.mode_stack.addWidget(self.live_panel)

        root_layout.addWidget(self.mode_stack)

        self.user_label = QLabel("", self)
        root_layout.addWidget(self.user_label)

        self._set_mode(TeacherMode.LESSON_LIST)

    def _build_mode_buttons(self, layout: QVBoxLayout) -> None:
        button_row = QHBoxLayout()

        self.lessons_mode_button = QPushButton(MODE_BUTTON_LESSONS, self)
        self.lessons_mode_button.setCheckable(True)
        self.lessons_mode_button.clicked.connect(self._handle_show_lessons)
        button_row.addWidget(self.lessons_mode_button)

        self.edit_mode_button = QPushButton(MODE_BUTTON_EDIT, self)
        self.edit_mode_button.setCheckable(True)
        self.edit_mode_button.clicked.connect(self._handle_edit_selected)
        button_row.addWidget(self.edit_mode_button)

        self.present_mode_button = QPushButton(MODE_BUTTON_PRESENT, self)
        self.present_mode_button.setCheckable(True)
        self.present_mode_button.clicked.connect(self._handle_present_button)
        button_row.addWidget(self.present_mode_button)

        self.import_button = QPushButton(MODE_BUTTON_IMPORT, self)
        self.import_button.clicked.connect(self._handle_import_lesson)
        button_row.addWidget(self.import_button)

        self.export_button = QPushButton(MODE_BUTTON_EXPORT, self)
        self.export_button.clicked.connect(self._handle_export_lesson)
        button_row.addWidget(self.export_button)

        button_row.addStretch()

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)

        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)

        self.settings_button = QPushButton("Settings", self)
        self.settings_button.clicked.connect(self._handle_settings)
        button_row.addWidget(self.settings_button)

        self.sign_out_button = QPushButton(MODE_BUTTON_SIGN_OUT, self)
        self.sign_out_button.clicked.connect(self._handle_sign_out)
        button_row.addWidget(self.sign_out_button)

        layout.addLayout(button_row)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(LIVE_REFRESH_INTERVAL_MS)
        self.refresh_timer.timeout.connect(self._refresh_state)
        self.refresh_timer.start()

    def _refresh_state(self) -> None:
        if self._mode == TeacherMode.LESSON_LIVE:
            self.live_panel.refresh()

    def _set_mode(self, mode: TeacherMode) -> None:
        self._mode = mode
        live_mode = mode == TeacherMode.LESSON_LIVE
        self.lessons_mode_button.setChecked(mode == TeacherMode.LESSON_LIST)
        self.edit_mode_button.setChecked(mode == TeacherMode.LESSON_EDITOR)
        self.present_mode_button.setChecked(live_mode)
        self.present_mode_button.setText(MODE_BUTTON_STOP if live_mode else MODE_BUTTON_PRESENT)

        for button in (
            self.lessons_mode_button,
            self.edit_mode_button,
            self.import_button,
            self.export_button,
            self.sign_out_button,
        ):
            button.setEnabled(not live_mode)

        index_map = {
            TeacherMode.LESSON_LIST: 0,
            TeacherMode.LESSON_EDITOR: 1,
            TeacherMode.LESSON_LIVE: 2,
        }
        self.mode_stack.setCurrentIndex(index_map[mode])

    # -- user ----------------------------------------------------------------

    def _handle_user_changed(self, user: AuthUser | None) -> None:
        if user is None:
            self.user_label.setText("Not signed in")
            self.lesson_list_panel.set_user(None)
            return
        self.user_label.setText(f"Signed in as {user.name or user.email}")
        self.lesson_list_panel.set_user(user.id)
        self._load_user_preferences(user)

    def _load_user_preferences(self, user: AuthUser) -> None:
        try:
            user_settings = self.services.settings.get_user_settings(user.id)
        except LessonAppError as exc:
            logger.warning("Using default preferences: %s", exc)
            return
        self._ui_font_size = int(user_settings.settings.get(UI_FONT_SIZE_SETTING, DEFAULT_UI_FONT_SIZE))
        self._live_font_size = int(user_settings.settings.get(LIVE_FONT_SIZE_SETTING, DEFAULT_LIVE_FONT_SIZE))
        self.live_panel.set_auto_read(user_settings.tts.enabled and user_settings.tts.auto_play)
        self._apply_styles()

    def _handle_sign_out(self) -> None:
        if not self._confirm_leave_editor():
            return
        self.auth.logout()
        self.hide()
        dialog = LoginDialog(self.auth, self)
        if dialog.exec():
            self._set_mode(TeacherMode.LESSON_LIST)
            self.show()
        else:
            self.close()

    # -- lessons -------------------------------------------------------------

    def _confirm_leave_editor(self) -> bool:
        if self._mode != TeacherMode.LESSON_EDITOR:
            return True
        return self.editor_panel.check_unsaved_changes()

    def _handle_show_lessons(self) -> None:
        if not self._confirm_leave_editor():
            self._set_mode(self._mode)
            return
        self.lesson_list_panel.refresh()
        self._set_mode(TeacherMode.LESSON_LIST)

    def _handle_edit_selected(self) -> None:
        if self._mode == TeacherMode.LESSON_EDITOR:
            self._set_mode(TeacherMode.LESSON_EDITOR)
            return
        lesson = self.lesson_list_panel.selected_lesson()
        if lesson is None:
            show_warning(self, "No lesson", NO_LESSON_SELECTED_MESSAGE)
            self._set_mode(self._mode)
            return
        self._open_lesson_in_editor(lesson)

    def _open_lesson_in_editor(self, lesson: Lesson) -> None:
        self.editor_panel.load_lesson(lesson)
        self._set_mode(TeacherMode.LESSON_EDITOR)

    def _current_lesson(self) -> Lesson | None:
        if self._mode == TeacherMode.LESSON_EDITOR and self.editor_panel.lesson is not None:
            return self.editor_panel.lesson
        return self.lesson_list_panel.selected_lesson()

    # -- live session --------------------------------------------------------

    def _handle_present_button(self) -> None:
        if self._mode == TeacherMode.LESSON_LIVE:
            self.live_panel.stop_session()
            if self.live_panel.is_active:
                self._set_mode(TeacherMode.LESSON_LIVE)
            return

        user = self.auth.user
        if not self._confirm_leave_editor() or user is None:
            self._set_mode(self._mode)
            return
        lesson = self._current_lesson()
        if lesson is None:
            show_warning(self, "No lesson", NO_LESSON_SELECTED_MESSAGE)
            self._set_mode(self._mode)
            return

        self.live_panel.update_student_url(self.student_url)
        if not self.live_panel.start_session(lesson, user.id):
            self._set_mode(self._mode)
            return
        self._set_mode(TeacherMode.LESSON_LIVE)

    def _handle_session_ended(self) -> None:
        self.lesson_list_panel.refresh()
        self._set_mode(TeacherMode.LESSON_LIST)

    # -- import / export -----------------------------------------------------

    def _handle_import_lesson(self) -> None:
        user = self.auth.user
        if user is None or not self._confirm_leave_editor():
            return

        file_path, _ = QFileDialog.getOpenFileName(
            self,
            IMPORT_DIALOG_TITLE,
            str(Path.home()),
            IMPORT_FILE_FILTER,
        )
        if not file_path:
            return

        try:
            imported = load_lesson_from_file(Path(file_path))
        except (OSError, LessonImportError) as exc:
            show_error(self, "Import failed", str(exc))
            return

        try:
            lesson = self.services.lessons.create_lesson(user.id, imported.title)
            lesson.slides = imported.slides
            lesson.settings = imported.settings
            lesson = self.services.lessons.save_lesson(lesson)
        except LessonAppError as exc:
            show_error(self, "Lesson rejected", str(exc))
            return

        self.lesson_list_panel.refresh()
        self._open_lesson_in_editor(lesson)
        show_info(
            self,
            "Lesson imported",
            f"Imported '{lesson.title}' with {len(lesson.slides)} slides.",
            font_point_size=self._ui_font_size,
        )

    def _handle_export_lesson(self) -> None:
        if not self._confirm_leave_editor():
            return
        lesson = self._current_lesson()
        if lesson is None:
            show_warning(self, "No lesson", NO_LESSON_SELECTED_MESSAGE)
            return

        default_path = self._last_export_path or (Path.cwd() / f"{lesson.title}.json")
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            EXPORT_DIALOG_TITLE,
            str(default_path),
            EXPORT_FILE_FILTER,
        )
        if not file_path:
            return

        try:
            save_lesson_to_file(Path(file_path), lesson)
        except (OSError, ValueError) as exc:
            show_error(self, "Export failed", str(exc))
            return

        self._last_export_path = Path(file_path)
        show_info(self, "Lesson saved", f"Lesson exported to {file_path}.", font_point_size=self._ui_font_size)

    # -- about / help / settings --------------------------------------------

    def _handle_about(self) -> None:
        details = (
            f"{APP_NAME} v{APP_VERSION}\n"
            f"License: {APP_LICENSE}\n\n"
            f"{APP_ABOUT_TEXT}"
        )
        show_info(self, f"About {APP_NAME}", details, font_point_size=self._ui_font_size)

    def _handle_help(self) -> None:
        show_info(self, f"{APP_NAME} Help", HELP_TEXT, font_point_size=self._ui_font_size)

    def _handle_settings(self) -> None:
        user = self.auth.user
        if user is None:
            return
        try:
            current = self.services.settings.get_user_settings(user.id)
        except LessonAppError as exc:
            show_error(self, "Settings unavailable", str(exc))
            return

        dialog = SettingsDialog(
            current, self, model_loader=lambda: self.services.ai.fetch_available_models(current.user_id)
        )
        if not dialog.exec():
            return
        try:
            updated = self.services.settings.update_user_settings(dialog.get_user_settings())
        except LessonAppError as exc:
            show_error(self, "Settings not saved", str(exc))
            return
        self._ui_font_size = dialog.get_ui_font_size()
        self._live_font_size = dialog.get_live_font_size()
        self.live_panel.set_auto_read(updated.tts.enabled and updated.tts.auto_play)
        self._apply_styles()

    def _apply_styles(self) -> None:
        self.setStyleSheet(Styles.get_main_window_style())

        ui_style = f"font-size: {self._ui_font_size}pt;"
        buttons = [
            self.lessons_mode_button,
            self.edit_mode_button,
            self.present_mode_button,
            self.import_button,
            self.export_button,
            self.about_button,
            self.help_button,
            self.settings_button,
            self.sign_out_button,
        ]
        for button in buttons:
            button.setStyleSheet(ui_style)

        self.lesson_list_panel.apply_font_size(self._ui_font_size)
        self.editor_panel.apply_font_size(self._ui_font_size)
        self.live_panel.apply_font_size(self._live_font_size)

    def closeEvent(self, event) -> None:  # noqa: N802
        if self._mode == TeacherMode.LESSON_EDITOR and not self.editor_panel.check_unsaved_changes():
            event.ignore()
            return
        self.refresh_timer.stop()
        self.auth.teardown()
        event.accept()
