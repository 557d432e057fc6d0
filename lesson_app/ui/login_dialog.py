"""Sign-in dialog shown before the teacher console opens."""

from __future__ import annotations

import logging

from PySide6.QtWidgets import (
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
)

from lesson_app.constants.about import APP_NAME
from lesson_app.core.auth_context import AuthContext
from lesson_app.core.errors import InvalidCredentialError, LessonAppError
from lesson_app.core.models import UserRole
from lesson_app.styling.color_palette import ColorPalette, Theme

logger = logging.getLogger(__name__)


class LoginDialog(QDialog):
    """Signs a teacher in, or registers a new teacher account."""

    def __init__(self, auth: AuthContext, parent=None) -> None:
        super().__init__(parent)
        self.auth = auth
        self._registering = False
        self.setWindowTitle(f"{APP_NAME} sign in")
        self.setModal(True)
        self.setMinimumWidth(380)

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.title_label = QLabel("Sign in to your teacher account", self)
        layout.addWidget(self.title_label)

        form = QFormLayout()
        self.name_input = QLineEdit(self)
        self.name_label = QLabel("Full name:", self)
        form.addRow(self.name_label, self.name_input)
        self.email_input = QLineEdit(self)
        form.addRow("Email:", self.email_input)
        self.password_input = QLineEdit(self)
        self.password_input.setEchoMode(QLineEdit.Password)
        form.addRow("Password:", self.password_input)
        layout.addLayout(form)

        self.error_label = QLabel("", self)
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet(f"color: {ColorPalette.STATUS_INCORRECT.get(Theme.LIGHT)};")
        layout.addWidget(self.error_label)

        button_row = QHBoxLayout()
        self.mode_button = QPushButton("Create an account", self)
        self.mode_button.setFlat(True)
        self.mode_button.clicked.connect(self._toggle_mode)
        button_row.addWidget(self.mode_button)
        button_row.addStretch()

        self.cancel_button = QPushButton("Quit", self)
        self.cancel_button.clicked.connect(self.reject)  # type: ignore[arg-type]
        button_row.addWidget(self.cancel_button)

        self.submit_button = QPushButton("Sign in", self)
        self.submit_button.setDefault(True)
        self.submit_button.clicked.connect(self._handle_submit)
        button_row.addWidget(self.submit_button)
        layout.addLayout(button_row)

        self._apply_mode()

    def _toggle_mode(self) -> None:
        self._registering = not self._registering
        self._apply_mode()

    def _apply_mode(self) -> None:
        self.name_label.setVisible(self._registering)
        self.name_input.setVisible(self._registering)
        self.error_label.clear()
        if self._registering:
            self.title_label.setText("Create a teacher account")
            self.submit_button.setText("Create account")
            self.mode_button.setText("I already have an account")
        else:
            self.title_label.setText("Sign in to your teacher account")
            self.submit_button.setText("Sign in")
            self.mode_button.setText("Create an account")

    def _handle_submit(self) -> None:
        email = self.email_input.text().strip()
        password = self.password_input.text()
        if not email or not password:
            self.error_label.setText("Enter your email and password.")
            return
        try:
            if self._registering:
                user = self.auth.register(
                    email,
                    password,
                    role=UserRole.TEACHER,
                    name=self.name_input.text().strip(),
                )
            else:
                user = self.auth.login(email, password)
        except InvalidCredentialError as exc:
            self.error_label.setText(str(exc))
            return
        except LessonAppError as exc:
            logger.error("Sign in failed: %s", exc)
            self.error_label.setText(str(exc))
            return

        if user.role is not UserRole.TEACHER:
            self.auth.logout()
            self.error_label.setText("This console is for teachers. Students join from the browser.")
            return
        self.accept()
