"""Application entry point for LessonQt."""

from __future__ import annotations

import socket
import sys

from PySide6.QtWidgets import QApplication

from lesson_app.backend.auth import AuthClient
from lesson_app.backend.sql_backend import SqlBackend
from lesson_app.constants.about import APP_NAME
from lesson_app.core.app_services import build_services
from lesson_app.core.auth_context import AuthContext
from lesson_app.server.api_server import start_api_server
from lesson_app.ui.login_dialog import LoginDialog
from lesson_app.ui.teacher_main_window import TeacherMainWindow
from lesson_app.utils.config import load_settings
from lesson_app.utils.logging_config import configure_logging


def _determine_student_url(port: int) -> str:
    """Best-effort determination of the local IP for student-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Initialize logging, start the student server, and launch the Qt UI."""
    app_settings = load_settings()
    logger = configure_logging(app_settings.log_level)
    logger.info("Starting %s…", APP_NAME)

    student_url = app_settings.public_base_url or _determine_student_url(app_settings.port)
    backend = SqlBackend.from_url(app_settings.database_url, public_base_url=student_url.rstrip("/"))
    services = build_services(backend, app_settings)
    start_api_server(services, host=app_settings.host, port=app_settings.port)
    logger.info("Student page available at %s", student_url)

    app = QApplication(sys.argv)
    auth = AuthContext(AuthClient(backend.auth))
    auth.initialize()

    if auth.user is None and not LoginDialog(auth).exec():
        auth.teardown()
        sys.exit(0)

    window = TeacherMainWindow(services=services, auth=auth, student_url=student_url)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
