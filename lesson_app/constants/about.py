"""Static metadata describing LessonQt."""

APP_NAME = "LessonQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "LessonQt is a classroom presentation tool built with Qt and FastAPI. "
    "Author slide-based lessons with text, images, graphs and questions, then run "
    "live sessions that students join from the browser with a short code."
)

HELP_TEXT = (
    "Create a lesson with 'New Lesson', add slides and blocks in the editor, then press "
    "'Present' to start a live session. Students open the student page, sign in and "
    "enter the join code shown in the live view (or open the join link directly).\n\n"
    "Live controls:\n"
    "  Incognito - show students as 'Student N' in the progress grid.\n"
    "  Synced - lock every student to your current slide.\n"
    "  Pace - let students move freely between the slides you allow.\n"
    "  Pause - freeze student input without ending the session."
)
