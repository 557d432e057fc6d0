"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "LessonQt Teacher Console"
PLACEHOLDER_TEXT_BLOCK: str = "Write the block text (supports Markdown + LaTeX)."
STUDENT_URL_PLACEHOLDER: str = "http://<teacher-ip>:8000/"
LIVE_REFRESH_INTERVAL_MS: int = 1000

MODE_BUTTON_LESSONS: str = "My Lessons"
MODE_BUTTON_EDIT: str = "Edit Lesson"
MODE_BUTTON_PRESENT: str = "Present"
MODE_BUTTON_STOP: str = "End Session"
MODE_BUTTON_IMPORT: str = "Import Lesson"
MODE_BUTTON_EXPORT: str = "Export Lesson"
MODE_BUTTON_SIGN_OUT: str = "Sign Out"

LESSONS_NEW_BUTTON: str = "New Lesson"
LESSONS_OPEN_BUTTON: str = "Open"
LESSONS_DELETE_BUTTON: str = "Delete"
LESSONS_EMPTY_STATE: str = "No lessons yet. Create one to get started."

EDITOR_SAVE_BUTTON: str = "Save Lesson"
EDITOR_ADD_SLIDE_BUTTON: str = "Add Slide"
EDITOR_REMOVE_SLIDE_BUTTON: str = "Remove Slide"
EDITOR_ADD_BLOCK_BUTTON: str = "Add Block"
EDITOR_REMOVE_BLOCK_BUTTON: str = "Remove Block"
EDITOR_BLOCK_UP_BUTTON: str = "Move Up"
EDITOR_BLOCK_DOWN_BUTTON: str = "Move Down"
EDITOR_APPLY_BLOCK_BUTTON: str = "Apply Block Changes"

LIVE_PREV_BUTTON: str = "Previous Slide"
LIVE_NEXT_BUTTON: str = "Next Slide"
LIVE_ANONYMOUS_BUTTON: str = "Incognito"
LIVE_SYNC_BUTTON: str = "Synced"
LIVE_PACING_BUTTON: str = "Pace"
LIVE_PAUSE_BUTTON: str = "Pause"
LIVE_READ_ALOUD_BUTTON: str = "Read Aloud"
LIVE_MARK_CORRECT_BUTTON: str = "Mark Correct"
LIVE_MARK_INCORRECT_BUTTON: str = "Mark Incorrect"
LIVE_JOIN_CODE_TEMPLATE: str = "Join code: {code}"
LIVE_JOIN_URL_TEMPLATE: str = "Students connect to: {url}"
LIVE_STUDENT_COUNT_TEMPLATE: str = "{count} student(s) joined"
LIVE_PAUSED_MESSAGE: str = "Session paused. Students cannot answer or move."

SORT_OPTION_LABELS: dict[str, str] = {
    "last_name": "Last name",
    "first_name": "First name",
    "join_time": "Join time",
}

IMPORT_DIALOG_TITLE: str = "Select lesson file"
IMPORT_FILE_FILTER: str = "Lesson files (*.json);;All files (*.*)"
EXPORT_DIALOG_TITLE: str = "Save lesson to file"
EXPORT_FILE_FILTER: str = "Lesson files (*.json);;All files (*.*)"
IMAGE_DIALOG_TITLE: str = "Select image"
IMAGE_FILE_FILTER: str = "Images (*.png *.jpg *.jpeg *.gif *.webp *.svg)"

NO_LESSON_SELECTED_MESSAGE: str = "Select or create a lesson first."
LESSON_SAVED_MESSAGE: str = "Lesson saved."
