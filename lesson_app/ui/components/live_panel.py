"""Component for presenting a lesson to a live session."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, Qt, QUrl
from PySide6.QtGui import QBrush, QColor, QFont
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QComboBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from lesson_app.backend.tables import (
    PresentationSessionRow,
    ProfileRow,
    SessionParticipantRow,
    StudentAnswerRow,
    Table,
)
from lesson_app.constants.ui_constants import (
    LIVE_ANONYMOUS_BUTTON,
    LIVE_JOIN_CODE_TEMPLATE,
    LIVE_JOIN_URL_TEMPLATE,
    LIVE_MARK_CORRECT_BUTTON,
    LIVE_MARK_INCORRECT_BUTTON,
    LIVE_NEXT_BUTTON,
    LIVE_PACING_BUTTON,
    LIVE_PAUSE_BUTTON,
    LIVE_PAUSED_MESSAGE,
    LIVE_PREV_BUTTON,
    LIVE_READ_ALOUD_BUTTON,
    LIVE_STUDENT_COUNT_TEMPLATE,
    LIVE_SYNC_BUTTON,
    SORT_OPTION_LABELS,
)
from lesson_app.core.app_services import AppServices
from lesson_app.core.errors import LessonAppError
from lesson_app.core.join_flow import NotificationLevel
from lesson_app.core.lesson_controls import LessonControls
from lesson_app.core.models import Lesson, slide_plain_text
from lesson_app.core.progress import build_progress_grid, build_student_progress, display_name
from lesson_app.core.realtime_sync import RealTimeCollection, RealTimeSync
from lesson_app.core.slide_renderer import Audience, SlideRenderer
from lesson_app.styling.color_palette import ColorPalette, Theme
from lesson_app.styling.styles import STATUS_COLORS, STATUS_SYMBOLS, Styles
from lesson_app.ui.dialog_helpers import confirm_end_session, show_warning

logger = logging.getLogger(__name__)

_NOTICE_COLORS = {
    NotificationLevel.INFO: ColorPalette.TEXT_MUTED,
    NotificationLevel.SUCCESS: ColorPalette.STATUS_CORRECT,
    NotificationLevel.ERROR: ColorPalette.STATUS_INCORRECT,
}


class LivePanel(QWidget):
    """UI component for running a live lesson session."""

    def __init__(
        self,
        services: AppServices,
        student_url: str,
        on_session_ended: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.services = services
        self.student_url = student_url
        self.on_session_ended = on_session_ended

        self._lesson: Lesson | None = None
        self._user_id: str | None = None
        self._theme = Theme.LIGHT
        self._font_size = 14
        self._profiles: dict[str, ProfileRow] = {}
        self._rendered_slide_key: tuple[str, int] | None = None
        self._speech_buffer: QBuffer | None = None
        self._auto_read = False

        backend = services.backend
        self.session_sync = RealTimeSync(backend, Table.PRESENTATION_SESSIONS, "id")
        self.participants_sync = RealTimeCollection(
            backend, Table.SESSION_PARTICIPANTS, "session_id", order_by="joined_at"
        )
        self.answers_sync = RealTimeCollection(
            backend, Table.STUDENT_ANSWERS, "session_id", order_by="submitted_at"
        )
        self.controls = LessonControls(services.sessions, self.session_sync, notify=self._notify)
        self._renderer = SlideRenderer(Audience.TEACHER)

        self._build_ui()
        self._setup_audio()

    # -- construction --------------------------------------------------------

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        info_row = QHBoxLayout()
        self.join_code_label = QLabel(LIVE_JOIN_CODE_TEMPLATE.format(code="—"), self)
        self.join_code_label.setStyleSheet(Styles.get_status_label_style())
        info_row.addWidget(self.join_code_label)
        self.network_label = QLabel(LIVE_JOIN_URL_TEMPLATE.format(url=self.student_url), self)
        self.network_label.setWordWrap(True)
        info_row.addWidget(self.network_label, stretch=1)
        self.student_count_label = QLabel(LIVE_STUDENT_COUNT_TEMPLATE.format(count=0), self)
        info_row.addWidget(self.student_count_label)
        layout.addLayout(info_row)

        control_row = QHBoxLayout()
        self.prev_button = QPushButton(LIVE_PREV_BUTTON, self)
        self.prev_button.clicked.connect(self._handle_previous_slide)
        control_row.addWidget(self.prev_button)
        self.position_label = QLabel("", self)
        self.position_label.setAlignment(Qt.AlignCenter)
        control_row.addWidget(self.position_label)
        self.next_button = QPushButton(LIVE_NEXT_BUTTON, self)
        self.next_button.clicked.connect(self._handle_next_slide)
        control_row.addWidget(self.next_button)
        control_row.addStretch()

        self.anonymous_button = self._toggle_button(LIVE_ANONYMOUS_BUTTON, self.controls.toggle_anonymous)
        self.sync_button = self._toggle_button(LIVE_SYNC_BUTTON, self.controls.toggle_sync)
        self.pacing_button = self._toggle_button(LIVE_PACING_BUTTON, self.controls.toggle_pacing)
        self.pause_button = self._toggle_button(LIVE_PAUSE_BUTTON, self.controls.toggle_pause)
        for button in (self.anonymous_button, self.sync_button, self.pacing_button, self.pause_button):
            control_row.addWidget(button)

        self.read_aloud_button = QPushButton(LIVE_READ_ALOUD_BUTTON, self)
        self.read_aloud_button.clicked.connect(self._handle_read_aloud)
        control_row.addWidget(self.read_aloud_button)
        layout.addLayout(control_row)

        self.paused_label = QLabel(LIVE_PAUSED_MESSAGE, self)
        self.paused_label.setVisible(False)
        layout.addWidget(self.paused_label)

        body_row = QHBoxLayout()
        self.preview_view = QWebEngineView(self)
        body_row.addWidget(self.preview_view, stretch=3)
        body_row.addLayout(self._build_side_column(), stretch=2)
        layout.addLayout(body_row, stretch=1)

        self.notice_label = QLabel("", self)
        layout.addWidget(self.notice_label)

    def _build_side_column(self) -> QVBoxLayout:
        column = QVBoxLayout()

        self.progress_group = QGroupBox("Student progress", self)
        progress_layout = QVBoxLayout()
        self.progress_group.setLayout(progress_layout)

        sort_row = QHBoxLayout()
        sort_row.addWidget(QLabel("Sort by:", self))
        self.sort_combo = QComboBox(self)
        for value, label in SORT_OPTION_LABELS.items():
            self.sort_combo.addItem(label, userData=value)
        self.sort_combo.currentIndexChanged.connect(self._handle_sort_changed)
        sort_row.addWidget(self.sort_combo)
        sort_row.addStretch()
        progress_layout.addLayout(sort_row)

        self.progress_table = QTableWidget(self)
        self.progress_table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.progress_table.setSelectionMode(QTableWidget.NoSelection)
        self.progress_table.horizontalHeader().sectionClicked.connect(self._handle_slide_header_clicked)
        self.progress_table.horizontalHeader().setToolTip(
            "While pacing is on, click a slide number to open or close it for students."
        )
        progress_layout.addWidget(self.progress_table)
        column.addWidget(self.progress_group, stretch=2)

        self.pending_group = QGroupBox("Answers to review", self)
        pending_layout = QVBoxLayout()
        self.pending_group.setLayout(pending_layout)
        self.pending_list = QListWidget(self)
        pending_layout.addWidget(self.pending_list)
        review_row = QHBoxLayout()
        self.mark_correct_button = QPushButton(LIVE_MARK_CORRECT_BUTTON, self)
        self.mark_correct_button.clicked.connect(lambda: self._handle_evaluate(True))
        review_row.addWidget(self.mark_correct_button)
        self.mark_incorrect_button = QPushButton(LIVE_MARK_INCORRECT_BUTTON, self)
        self.mark_incorrect_button.clicked.connect(lambda: self._handle_evaluate(False))
        review_row.addWidget(self.mark_incorrect_button)
        pending_layout.addLayout(review_row)
        column.addWidget(self.pending_group, stretch=1)
        return column

    def _toggle_button(self, text: str, action: Callable[[], object]) -> QPushButton:
        button = QPushButton(text, self)
        button.setCheckable(True)
        button.clicked.connect(lambda: self._run_control(action))
        return button

    def _setup_audio(self) -> None:
        self._audio_output = QAudioOutput(self)
        self._player = QMediaPlayer(self)
        self._player.setAudioOutput(self._audio_output)

    # -- session lifecycle ---------------------------------------------------

    def start_session(self, lesson: Lesson, user_id: str) -> bool:
        """Resume the lesson's active session or start a new one."""
        try:
            session = self.services.sessions.get_active_session_for_lesson(lesson.id)
            if session is None:
                session = self.services.sessions.start_presentation_session(lesson.id)
        except LessonAppError as exc:
            show_warning(self, "Session unavailable", f"Could not start the session: {exc}")
            return False

        self._lesson = lesson
        self._user_id = user_id
        self._profiles = {}
        self._rendered_slide_key = None
        self.session_sync.set_filter_value(session.id)
        self.participants_sync.set_filter_value(session.id)
        self.answers_sync.set_filter_value(session.id)
        self._configure_table_columns()
        self.refresh()
        logger.info("Presenting lesson %s in session %s", lesson.id, session.id)
        return True

    def stop_session(self) -> None:
        if self.session_sync.data is not None and self.session_sync.data.ended_at is None:
            if not confirm_end_session(self):
                return
            if not self.controls.end_session():
                return
        self._release_session()
        self.on_session_ended()

    def _release_session(self) -> None:
        self.session_sync.set_filter_value(None)
        self.participants_sync.set_filter_value(None)
        self.answers_sync.set_filter_value(None)
        self._player.stop()
        self._lesson = None
        self.progress_table.setRowCount(0)
        self.pending_list.clear()
        self.preview_view.setHtml("")
        self.join_code_label.setText(LIVE_JOIN_CODE_TEMPLATE.format(code="—"))

    def update_student_url(self, url: str) -> None:
        self.student_url = url
        self.network_label.setText(LIVE_JOIN_URL_TEMPLATE.format(url=url))

    def set_auto_read(self, enabled: bool) -> None:
        self._auto_read = enabled

    @property
    def is_active(self) -> bool:
        return self._lesson is not None

    # -- refresh tick --------------------------------------------------------

    def refresh(self) -> None:
        """Redraw from the latest sync snapshots; called from the window timer."""
        if self._lesson is None:
            return
        state = self.session_sync.snapshot
        session = state.data
        if state.error:
            self._notify(NotificationLevel.ERROR, f"Session update failed: {state.error}")
        if session is None:
            return
        if session.ended_at is not None:
            self._notify(NotificationLevel.INFO, "This session has ended.")
            self._release_session()
            self.on_session_ended()
            return

        slide_count = len(self._lesson.slides)
        self.join_code_label.setText(LIVE_JOIN_CODE_TEMPLATE.format(code=session.join_code))
        self.position_label.setText(f"Slide {session.current_slide + 1} of {slide_count}")
        self.prev_button.setEnabled(session.current_slide > 0)
        self.next_button.setEnabled(session.current_slide < slide_count - 1)
        self.anonymous_button.setChecked(session.anonymous_mode)
        self.sync_button.setChecked(session.is_synced)
        self.pacing_button.setChecked(session.student_pacing_enabled)
        self.pause_button.setChecked(session.is_paused)
        self.paused_label.setVisible(session.is_paused)

        if session.current_slide < slide_count:
            slide = self._lesson.slides[session.current_slide]
            slide_key = (slide.id, session.current_slide)
        else:
            slide, slide_key = None, None
        if slide is not None and slide_key != self._rendered_slide_key:
            self._rendered_slide_key = slide_key
            self.preview_view.setHtml(
                self._renderer.render_document(slide, Styles.get_slide_page_css(self._theme))
            )
            if self._auto_read:
                self._handle_read_aloud()

        participants = [row for row in self.participants_sync.data if row.is_active]
        answers = self.answers_sync.data
        self.student_count_label.setText(LIVE_STUDENT_COUNT_TEMPLATE.format(count=len(participants)))
        self._update_profiles(row.user_id for row in participants)
        labels = self._update_progress_table(participants, answers, session)
        self._update_pending_answers(answers, labels)

    def _update_profiles(self, user_ids: Iterable[str]) -> None:
        missing = [user_id for user_id in user_ids if user_id not in self._profiles]
        if not missing:
            return
        try:
            self._profiles.update(self.services.sessions.get_profiles(missing))
        except LessonAppError as exc:
            logger.warning("Could not load student profiles: %s", exc)

    def _configure_table_columns(self) -> None:
        if self._lesson is None:
            return
        slides = self._lesson.slides
        self.progress_table.setColumnCount(len(slides))
        self.progress_table.setHorizontalHeaderLabels([str(number) for number in range(1, len(slides) + 1)])
        for index, slide in enumerate(slides):
            self.progress_table.horizontalHeaderItem(index).setToolTip(slide.title)

    def _update_progress_table(
        self,
        participants: list[SessionParticipantRow],
        answers: list[StudentAnswerRow],
        session: PresentationSessionRow,
    ) -> dict[str, str]:
        progress = build_student_progress(participants, answers, self._profiles, self._lesson.id)
        rows = build_progress_grid(
            progress,
            self._lesson.slides,
            anonymous=session.anonymous_mode,
            sort_key=self.controls.sort_key,
        )
        self.progress_table.setRowCount(len(rows))
        self.progress_table.setVerticalHeaderLabels([row.label for row in rows])
        paced = set(session.paced_slides) if session.student_pacing_enabled else None
        for column in range(self.progress_table.columnCount()):
            header = self.progress_table.horizontalHeaderItem(column)
            if header is not None:
                header_font = header.font()
                header_font.setBold(paced is not None and column in paced)
                header.setFont(header_font)

        for row_index, row in enumerate(rows):
            for cell in row.cells:
                item = QTableWidgetItem(STATUS_SYMBOLS[cell.status])
                item.setTextAlignment(Qt.AlignCenter)
                item.setBackground(QBrush(QColor(STATUS_COLORS[cell.status].get(self._theme))))
                item.setToolTip(cell.status.value.replace("_", " "))
                if cell.is_current:
                    font = QFont(item.font())
                    font.setBold(True)
                    font.setUnderline(True)
                    item.setFont(font)
                self.progress_table.setItem(row_index, cell.slide_index, item)
        return {row.student_id: row.label for row in rows}

    def _update_pending_answers(self, answers: list[StudentAnswerRow], labels: dict[str, str]) -> None:
        pending = [answer for answer in answers if answer.is_correct is None]
        selected = self.pending_list.currentItem()
        selected_id = selected.data(Qt.UserRole) if selected is not None else None
        self.pending_list.clear()
        for answer in pending:
            name = labels.get(answer.user_id) or display_name(self._profiles.get(answer.user_id))
            item = QListWidgetItem(f"{name}: {answer.answer}")
            item.setData(Qt.UserRole, answer.id)
            self.pending_list.addItem(item)
            if answer.id == selected_id:
                self.pending_list.setCurrentItem(item)
        has_pending = bool(pending)
        self.mark_correct_button.setEnabled(has_pending)
        self.mark_incorrect_button.setEnabled(has_pending)

    # -- handlers ------------------------------------------------------------

    def _run_control(self, action: Callable[[], object]) -> None:
        action()
        self.refresh()

    def _handle_previous_slide(self) -> None:
        if self._lesson is not None:
            self._run_control(lambda: self.controls.previous_slide(len(self._lesson.slides)))

    def _handle_next_slide(self) -> None:
        if self._lesson is not None:
            self._run_control(lambda: self.controls.next_slide(len(self._lesson.slides)))

    def _handle_sort_changed(self) -> None:
        self.controls.set_sort(self.sort_combo.currentData())
        self.refresh()

    def _handle_slide_header_clicked(self, column: int) -> None:
        session = self.controls.session
        if session is None or not session.student_pacing_enabled:
            return
        paced = set(session.paced_slides)
        paced.symmetric_difference_update({column})
        self._run_control(lambda: self.controls.set_paced_slides(sorted(paced)))

    def _handle_evaluate(self, is_correct: bool) -> None:
        item = self.pending_list.currentItem()
        if item is None:
            self._notify(NotificationLevel.INFO, "Select an answer to review first.")
            return
        try:
            self.services.sessions.evaluate_answer(item.data(Qt.UserRole), is_correct)
        except LessonAppError as exc:
            self._notify(NotificationLevel.ERROR, f"Could not record the verdict: {exc}")
            return
        self.refresh()

    def _handle_read_aloud(self) -> None:
        session = self.controls.session
        if self._lesson is None or session is None or self._user_id is None:
            return
        slide = self._lesson.slides[session.current_slide]
        audio = self.services.tts.text_to_speech(slide_plain_text(slide), self._user_id)
        if audio is None:
            self._notify(
                NotificationLevel.ERROR,
                "Read aloud is unavailable. Check the text-to-speech settings and API key.",
            )
            return
        self._player.stop()
        self._speech_buffer = QBuffer(self)
        self._speech_buffer.setData(QByteArray(audio))
        self._speech_buffer.open(QIODevice.ReadOnly)
        self._player.setSourceDevice(self._speech_buffer, QUrl("speech.mp3"))
        self._player.play()

    def _notify(self, level: NotificationLevel, message: str) -> None:
        color = _NOTICE_COLORS[level].get(self._theme)
        self.notice_label.setStyleSheet(f"color: {color}; font-size: {self._font_size}pt;")
        self.notice_label.setText(message)

    def apply_font_size(self, font_size: int) -> None:
        self._font_size = font_size
        style = f"font-size: {font_size}pt;"
        for widget in (
            self.prev_button,
            self.next_button,
            self.position_label,
            self.anonymous_button,
            self.sync_button,
            self.pacing_button,
            self.pause_button,
            self.read_aloud_button,
            self.network_label,
            self.student_count_label,
            self.paused_label,
        ):
            widget.setStyleSheet(style)
        self.join_code_label.setStyleSheet(f"font-size: {font_size + 4}pt; font-weight: bold;")
        self.progress_group.setStyleSheet(style)
        self.pending_group.setStyleSheet(style)
