"""Qt UI components for the teacher application."""

from .dialog_helpers import (
    check_unsaved_changes,
    confirm_delete_lesson,
    confirm_delete_slide,
    confirm_end_session,
    show_error,
    show_info,
    show_warning,
)
from .teacher_main_window import TeacherMainWindow

__all__ = [
    "TeacherMainWindow",
    "check_unsaved_changes",
    "confirm_delete_lesson",
    "confirm_delete_slide",
    "confirm_end_session",
    "show_error",
    "show_info",
    "show_warning",
]
