"""Component for editing the slides and blocks of a lesson."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from lesson_app.constants.ui_constants import (
    EDITOR_ADD_BLOCK_BUTTON,
    EDITOR_ADD_SLIDE_BUTTON,
    EDITOR_APPLY_BLOCK_BUTTON,
    EDITOR_BLOCK_DOWN_BUTTON,
    EDITOR_BLOCK_UP_BUTTON,
    EDITOR_REMOVE_BLOCK_BUTTON,
    EDITOR_REMOVE_SLIDE_BUTTON,
    EDITOR_SAVE_BUTTON,
    IMAGE_DIALOG_TITLE,
    IMAGE_FILE_FILTER,
    LESSON_SAVED_MESSAGE,
    PLACEHOLDER_TEXT_BLOCK,
)
from lesson_app.core.errors import LessonAppError
from lesson_app.core.lesson_editor import LessonEditor, new_block
from lesson_app.core.models import (
    BlockType,
    GraphBlock,
    ImageBlock,
    Lesson,
    LessonBlock,
    QuestionBlock,
    QuestionType,
    TextBlock,
    block_from_dict,
    block_to_dict,
)
from lesson_app.core.services.image_service import ImageService, UploadedImage
from lesson_app.core.services.lesson_service import LessonService
from lesson_app.core.slide_renderer import Audience, SlideRenderer
from lesson_app.styling.styles import Styles
from lesson_app.ui.dialog_helpers import (
    check_unsaved_changes,
    confirm_delete_slide,
    show_error,
    show_warning,
)

logger = logging.getLogger(__name__)

_BLOCK_PAGES: dict[BlockType, int] = {
    BlockType.TEXT: 0,
    BlockType.IMAGE: 1,
    BlockType.QUESTION: 2,
    BlockType.GRAPH: 3,
}


def _block_summary(block: LessonBlock) -> str:
    if isinstance(block, TextBlock):
        text = block.content.strip().splitlines()[0] if block.content.strip() else "(empty)"
    elif isinstance(block, ImageBlock):
        text = block.alt or Path(block.url).name
    elif isinstance(block, QuestionBlock):
        text = block.question or "(no question text)"
    else:
        text = block.equation
    return f"[{block.block_type.value}] {text[:60]}"


class EditorPanel(QWidget):
    """UI component for building a lesson slide by slide."""

    def __init__(
        self,
        lesson_service: LessonService,
        image_service: ImageService,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.lesson_service = lesson_service
        self.image_service = image_service
        self.editor: LessonEditor | None = None
        self._renderer = SlideRenderer(Audience.TEACHER)
        self._slide_index = 0
        self._block_dirty = False
        self._loading_fields = False

        self._build_ui()

    # -- construction --------------------------------------------------------

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        title_row = QHBoxLayout()
        title_row.addWidget(QLabel("Lesson title:", self))
        self.lesson_title_input = QLineEdit(self)
        self.lesson_title_input.editingFinished.connect(self._handle_lesson_title_edited)
        title_row.addWidget(self.lesson_title_input, stretch=1)
        self.save_button = QPushButton(EDITOR_SAVE_BUTTON, self)
        self.save_button.clicked.connect(self.save_lesson)
        title_row.addWidget(self.save_button)
        layout.addLayout(title_row)

        body_row = QHBoxLayout()
        body_row.addLayout(self._build_slide_column(), stretch=1)
        body_row.addLayout(self._build_block_column(), stretch=2)

        self.preview_view = QWebEngineView(self)
        body_row.addWidget(self.preview_view, stretch=3)
        layout.addLayout(body_row, stretch=1)

        self.status_label = QLabel("Open a lesson to start editing.", self)
        layout.addWidget(self.status_label)

    def _build_slide_column(self) -> QVBoxLayout:
        column = QVBoxLayout()
        column.addWidget(QLabel("Slides", self))

        self.slide_list = QListWidget(self)
        self.slide_list.setDragDropMode(QAbstractItemView.InternalMove)
        self.slide_list.currentRowChanged.connect(self._handle_slide_selected)
        self.slide_list.model().rowsMoved.connect(self._handle_slide_rows_moved)
        column.addWidget(self.slide_list, stretch=1)

        self.slide_title_input = QLineEdit(self)
        self.slide_title_input.setPlaceholderText("Slide title")
        self.slide_title_input.editingFinished.connect(self._handle_slide_title_edited)
        column.addWidget(self.slide_title_input)

        buttons = QHBoxLayout()
        self.add_slide_button = QPushButton(EDITOR_ADD_SLIDE_BUTTON, self)
        self.add_slide_button.clicked.connect(self._handle_add_slide)
        buttons.addWidget(self.add_slide_button)
        self.remove_slide_button = QPushButton(EDITOR_REMOVE_SLIDE_BUTTON, self)
        self.remove_slide_button.clicked.connect(self._handle_remove_slide)
        buttons.addWidget(self.remove_slide_button)
        column.addLayout(buttons)
        return column

    def _build_block_column(self) -> QVBoxLayout:
        column = QVBoxLayout()
        column.addWidget(QLabel("Blocks", self))

        self.block_list = QListWidget(self)
        self.block_list.currentRowChanged.connect(self._handle_block_selected)
        column.addWidget(self.block_list, stretch=1)

        add_row = QHBoxLayout()
        self.block_type_combo = QComboBox(self)
        for block_type in BlockType:
            self.block_type_combo.addItem(block_type.value.capitalize(), userData=block_type)
        add_row.addWidget(self.block_type_combo)
        self.add_block_button = QPushButton(EDITOR_ADD_BLOCK_BUTTON, self)
        self.add_block_button.clicked.connect(self._handle_add_block)
        add_row.addWidget(self.add_block_button)
        column.addLayout(add_row)

        move_row = QHBoxLayout()
        self.block_up_button = QPushButton(EDITOR_BLOCK_UP_BUTTON, self)
        self.block_up_button.clicked.connect(lambda: self._handle_move_block(-1))
        move_row.addWidget(self.block_up_button)
        self.block_down_button = QPushButton(EDITOR_BLOCK_DOWN_BUTTON, self)
        self.block_down_button.clicked.connect(lambda: self._handle_move_block(1))
        move_row.addWidget(self.block_down_button)
        self.remove_block_button = QPushButton(EDITOR_REMOVE_BLOCK_BUTTON, self)
        self.remove_block_button.clicked.connect(self._handle_remove_block)
        move_row.addWidget(self.remove_block_button)
        column.addLayout(move_row)

        self.block_form_stack = QStackedWidget(self)
        self.block_form_stack.addWidget(self._build_text_form())
        self.block_form_stack.addWidget(self._build_image_form())
        self.block_form_stack.addWidget(self._build_question_form())
        self.block_form_stack.addWidget(self._build_graph_form())
        column.addWidget(self.block_form_stack, stretch=1)

        self.apply_block_button = QPushButton(EDITOR_APPLY_BLOCK_BUTTON, self)
        self.apply_block_button.clicked.connect(self._handle_apply_block)
        column.addWidget(self.apply_block_button)
        return column

    def _build_text_form(self) -> QWidget:
        page = QWidget(self)
        form = QVBoxLayout(page)
        self.text_content_input = QPlainTextEdit(page)
        self.text_content_input.setPlaceholderText(PLACEHOLDER_TEXT_BLOCK)
        self.text_content_input.textChanged.connect(self._on_block_field_changed)
        form.addWidget(self.text_content_input)
        return page

    def _build_image_form(self) -> QWidget:
        page = QWidget(self)
        form = QFormLayout(page)
        self.image_url_input = QLineEdit(page)
        self.image_url_input.textChanged.connect(self._on_block_field_changed)
        form.addRow("Image URL:", self.image_url_input)
        self.image_alt_input = QLineEdit(page)
        self.image_alt_input.textChanged.connect(self._on_block_field_changed)
        form.addRow("Description:", self.image_alt_input)
        self.image_upload_button = QPushButton("Replace with file…", page)
        self.image_upload_button.clicked.connect(self._handle_replace_image)
        form.addRow(self.image_upload_button)
        self._image_storage_path: str | None = None
        return page

    def _build_question_form(self) -> QWidget:
        page = QWidget(self)
        form = QFormLayout(page)
        self.question_type_combo = QComboBox(page)
        for question_type in QuestionType:
            self.question_type_combo.addItem(question_type.value, userData=question_type)
        self.question_type_combo.currentIndexChanged.connect(self._on_block_field_changed)
        form.addRow("Type:", self.question_type_combo)
        self.question_text_input = QPlainTextEdit(page)
        self.question_text_input.textChanged.connect(self._on_block_field_changed)
        form.addRow("Question:", self.question_text_input)
        self.question_options_input = QPlainTextEdit(page)
        self.question_options_input.setPlaceholderText("One option per line")
        self.question_options_input.textChanged.connect(self._on_block_field_changed)
        form.addRow("Options:", self.question_options_input)
        self.question_answer_input = QLineEdit(page)
        self.question_answer_input.setPlaceholderText("Leave empty to review answers yourself")
        self.question_answer_input.textChanged.connect(self._on_block_field_changed)
        form.addRow("Correct answer:", self.question_answer_input)
        return page

    def _build_graph_form(self) -> QWidget:
        page = QWidget(self)
        form = QFormLayout(page)
        self.graph_equation_input = QLineEdit(page)
        self.graph_equation_input.textChanged.connect(self._on_block_field_changed)
        form.addRow("Equation:", self.graph_equation_input)
        self.graph_bound_inputs: dict[str, QDoubleSpinBox] = {}
        for name in ("x_min", "x_max", "y_min", "y_max"):
            spinbox = QDoubleSpinBox(page)
            spinbox.setRange(-1_000_000.0, 1_000_000.0)
            spinbox.setDecimals(2)
            spinbox.valueChanged.connect(lambda _: self._on_block_field_changed())
            form.addRow(f"{name}:", spinbox)
            self.graph_bound_inputs[name] = spinbox
        return page

    # -- lesson lifecycle ----------------------------------------------------

    def load_lesson(self, lesson: Lesson) -> None:
        self.editor = LessonEditor(lesson)
        self._slide_index = 0
        self._block_dirty = False
        self.lesson_title_input.setText(lesson.title)
        self._refresh_slide_list()
        self.status_label.setText(f"Editing '{lesson.title}' ({len(lesson.slides)} slides).")

    @property
    def lesson(self) -> Lesson | None:
        return self.editor.lesson if self.editor else None

    def has_unsaved_changes(self) -> bool:
        return self._block_dirty or (self.editor is not None and self.editor.is_dirty)

    def check_unsaved_changes(self) -> bool:
        """Check if there are unsaved changes and prompt user. Returns True if ok to proceed."""
        if not self.has_unsaved_changes():
            return True

        result = check_unsaved_changes(self)

        if result is True:  # Save
            return self.save_lesson()
        elif result is False:  # Discard
            self._discard_changes()
            return True
        else:  # Cancel (None)
            return False

    def save_lesson(self) -> bool:
        if self.editor is None:
            return False
        if self._block_dirty and not self._handle_apply_block():
            return False
        try:
            saved = self.lesson_service.save_lesson(self.editor.lesson)
        except LessonAppError as exc:
            show_error(self, "Save failed", f"Could not save the lesson: {exc}")
            return False
        self.editor.lesson = saved
        self.editor.mark_saved()
        self.status_label.setText(LESSON_SAVED_MESSAGE)
        return True

    def _discard_changes(self) -> None:
        if self.editor is None:
            return
        reloaded = self.lesson_service.get_lesson_by_id(self.editor.lesson.id)
        if reloaded is not None:
            self.load_lesson(reloaded)
        else:
            self.editor.mark_saved()
            self._block_dirty = False

    # -- slides --------------------------------------------------------------

    def _refresh_slide_list(self) -> None:
        if self.editor is None:
            return
        self.slide_list.blockSignals(True)
        self.slide_list.clear()
        for number, slide in enumerate(self.editor.slides, start=1):
            self.slide_list.addItem(f"{number}. {slide.title}")
        self.slide_list.blockSignals(False)
        self._slide_index = max(0, min(self._slide_index, len(self.editor.slides) - 1))
        self.slide_list.setCurrentRow(self._slide_index)
        self._show_slide()

    def _show_slide(self) -> None:
        if self.editor is None:
            return
        slide = self.editor.get_slide(self._slide_index)
        self.slide_title_input.setText(slide.title)
        self.block_list.blockSignals(True)
        self.block_list.clear()
        for block in slide.blocks:
            self.block_list.addItem(_block_summary(block))
        self.block_list.blockSignals(False)
        if slide.blocks:
            self.block_list.setCurrentRow(0)
            self._handle_block_selected(0)
        else:
            self._set_block_form_enabled(False)
        self._refresh_preview()

    def _handle_slide_selected(self, row: int) -> None:
        if self.editor is None or row < 0 or row == self._slide_index:
            return
        if self._block_dirty and not self._handle_apply_block():
            self.slide_list.blockSignals(True)
            self.slide_list.setCurrentRow(self._slide_index)
            self.slide_list.blockSignals(False)
            return
        self._slide_index = row
        self._show_slide()

    def _handle_slide_rows_moved(self, _parent, start: int, _end: int, _destination, row: int) -> None:
        if self.editor is None:
            return
        target = row - 1 if row > start else row
        try:
            self.editor.move_slide(start, target)
        except IndexError as exc:
            logger.warning("Ignoring slide move: %s", exc)
            return
        self._slide_index = target
        self._refresh_slide_list()

    def _handle_slide_title_edited(self) -> None:
        if self.editor is None:
            return
        slide = self.editor.get_slide(self._slide_index)
        if self.slide_title_input.text().strip() == slide.title:
            return
        self.editor.rename_slide(self._slide_index, self.slide_title_input.text())
        self._refresh_slide_list()

    def _handle_lesson_title_edited(self) -> None:
        if self.editor is None or self.lesson_title_input.text().strip() == self.editor.lesson.title:
            return
        try:
            self.editor.rename_lesson(self.lesson_title_input.text())
        except ValueError as exc:
            show_warning(self, "Invalid title", str(exc))
            self.lesson_title_input.setText(self.editor.lesson.title)

    def _handle_add_slide(self) -> None:
        if self.editor is None:
            return
        self.editor.add_slide(index=self._slide_index + 1)
        self._slide_index += 1
        self._refresh_slide_list()

    def _handle_remove_slide(self) -> None:
        if self.editor is None:
            return
        if not confirm_delete_slide(self, self._slide_index + 1):
            return
        try:
            self.editor.remove_slide(self._slide_index)
        except ValueError as exc:
            show_warning(self, "Cannot remove slide", str(exc))
            return
        self._block_dirty = False
        self._refresh_slide_list()

    # -- blocks --------------------------------------------------------------

    def _current_block(self) -> LessonBlock | None:
        if self.editor is None:
            return None
        blocks = self.editor.get_slide(self._slide_index).blocks
        row = self.block_list.currentRow()
        return blocks[row] if 0 <= row < len(blocks) else None

    def _handle_block_selected(self, row: int) -> None:
        block = self._current_block()
        if block is None:
            self._set_block_form_enabled(False)
            return
        self._populate_block_form(block)

    def _set_block_form_enabled(self, enabled: bool) -> None:
        self.block_form_stack.setEnabled(enabled)
        self.apply_block_button.setEnabled(enabled)
        for button in (self.block_up_button, self.block_down_button, self.remove_block_button):
            button.setEnabled(enabled)

    def _populate_block_form(self, block: LessonBlock) -> None:
        self._loading_fields = True
        self.block_form_stack.setCurrentIndex(_BLOCK_PAGES[block.block_type])
        if isinstance(block, TextBlock):
            self.text_content_input.setPlainText(block.content)
        elif isinstance(block, ImageBlock):
            self.image_url_input.setText(block.url)
            self.image_alt_input.setText(block.alt)
            self._image_storage_path = block.storage_path
        elif isinstance(block, QuestionBlock):
            self.question_type_combo.setCurrentIndex(list(QuestionType).index(block.question_type))
            self.question_text_input.setPlainText(block.question)
            self.question_options_input.setPlainText("\n".join(block.options))
            answer = block.correct_answer
            if isinstance(answer, bool):
                answer = str(answer).lower()
            self.question_answer_input.setText("" if answer is None else str(answer))
        elif isinstance(block, GraphBlock):
            self.graph_equation_input.setText(block.equation)
            for name, spinbox in self.graph_bound_inputs.items():
                spinbox.setValue(getattr(block.settings, name))
        self._loading_fields = False
        self._block_dirty = False
        self._set_block_form_enabled(True)

    def _on_block_field_changed(self) -> None:
        if self._loading_fields:
            return
        self._block_dirty = True

    def _block_fields_from_form(self, block: LessonBlock) -> dict[str, Any]:
        data = block_to_dict(block)
        if isinstance(block, TextBlock):
            data["content"] = self.text_content_input.toPlainText()
        elif isinstance(block, ImageBlock):
            data.update(
                url=self.image_url_input.text().strip(),
                alt=self.image_alt_input.text().strip(),
                storage_path=self._image_storage_path,
            )
        elif isinstance(block, QuestionBlock):
            question_type = self.question_type_combo.currentData()
            options = [line.strip() for line in self.question_options_input.toPlainText().splitlines() if line.strip()]
            answer: Any = self.question_answer_input.text().strip() or None
            if answer is not None and question_type is QuestionType.TRUE_FALSE:
                answer = answer.lower() in ("true", "yes", "1")
            data.update(
                question_type=question_type.value,
                question=self.question_text_input.toPlainText().strip(),
                options=options if question_type is QuestionType.MULTIPLE_CHOICE else [],
                correct_answer=answer,
            )
        elif isinstance(block, GraphBlock):
            data.update(
                equation=self.graph_equation_input.text().strip(),
                settings={name: spinbox.value() for name, spinbox in self.graph_bound_inputs.items()},
            )
        return data

    def _handle_apply_block(self) -> bool:
        block = self._current_block()
        if self.editor is None or block is None:
            self._block_dirty = False
            return True
        try:
            updated = block_from_dict(self._block_fields_from_form(block))
            self.editor.update_block(self._slide_index, updated)
        except ValueError as exc:
            show_warning(self, "Invalid block", str(exc))
            return False
        self._block_dirty = False
        row = self.block_list.currentRow()
        self.block_list.item(row).setText(_block_summary(updated))
        self._refresh_preview()
        return True

    def _handle_add_block(self) -> None:
        if self.editor is None:
            return
        if self._block_dirty and not self._handle_apply_block():
            return
        block_type: BlockType = self.block_type_combo.currentData()
        fields: dict[str, Any] = {}
        if block_type is BlockType.IMAGE:
            uploaded = self._upload_image_from_dialog()
            if uploaded is None:
                return
            fields = {"url": uploaded.url, "storage_path": uploaded.path}
        block = self.editor.add_block(self._slide_index, new_block(block_type, **fields))
        self._show_slide()
        self.block_list.setCurrentRow(len(self.editor.get_slide(self._slide_index).blocks) - 1)
        self.status_label.setText(f"Added {block.block_type.value} block.")

    def _handle_remove_block(self) -> None:
        block = self._current_block()
        if self.editor is None or block is None:
            return
        self.editor.remove_block(self._slide_index, block.id)
        self._block_dirty = False
        if isinstance(block, ImageBlock) and block.storage_path:
            try:
                self.image_service.delete_image(block.storage_path)
            except LessonAppError as exc:
                logger.warning("Could not delete image %s: %s", block.storage_path, exc)
        self._show_slide()

    def _handle_move_block(self, step: int) -> None:
        if self.editor is None:
            return
        row = self.block_list.currentRow()
        target = row + step
        try:
            self.editor.move_block(self._slide_index, row, target)
        except IndexError:
            return
        self._show_slide()
        self.block_list.setCurrentRow(target)

    def _handle_replace_image(self) -> None:
        uploaded = self._upload_image_from_dialog()
        if uploaded is None:
            return
        self.image_url_input.setText(uploaded.url)
        self._image_storage_path = uploaded.path
        self._block_dirty = True

    def _upload_image_from_dialog(self) -> UploadedImage | None:
        if self.editor is None:
            return None
        file_path, _ = QFileDialog.getOpenFileName(self, IMAGE_DIALOG_TITLE, str(Path.home()), IMAGE_FILE_FILTER)
        if not file_path:
            return None
        try:
            return self.image_service.upload_image_file(Path(file_path), self.editor.lesson.created_by)
        except (OSError, LessonAppError) as exc:
            show_error(self, "Upload failed", str(exc))
            return None

    # -- preview -------------------------------------------------------------

    def _refresh_preview(self) -> None:
        if self.editor is None:
            self.preview_view.setHtml("")
            return
        slide = self.editor.get_slide(self._slide_index)
        self.preview_view.setHtml(self._renderer.render_document(slide, Styles.get_slide_page_css()))

    def apply_font_size(self, font_size: int) -> None:
        style = f"font-size: {font_size}pt;"
        buttons = [
            self.save_button,
            self.add_slide_button,
            self.remove_slide_button,
            self.add_block_button,
            self.remove_block_button,
            self.block_up_button,
            self.block_down_button,
            self.apply_block_button,
        ]
        for button in buttons:
            button.setStyleSheet(style)
