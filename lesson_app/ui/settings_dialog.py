"""Settings dialog for configuring LessonQt preferences."""

from __future__ import annotations

from typing import Any, Callable

from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)

from lesson_app.constants.session_constants import (
    AI_API_KEY_SETTING,
    CELEBRATION_PRESETS,
    TTS_API_KEY_SETTING,
)
from lesson_app.core.services.settings_service import (
    SCREEN_EFFECTS,
    AISettings,
    CelebrationSettings,
    TTSSettings,
    UserSettings,
)

UI_FONT_SIZE_SETTING = "ui_font_size"
LIVE_FONT_SIZE_SETTING = "live_font_size"
DEFAULT_UI_FONT_SIZE = 10
DEFAULT_LIVE_FONT_SIZE = 14


class SettingsDialog(QDialog):
    """Dialog for the teacher's stored preferences."""

    def __init__(
        self,
        user_settings: UserSettings,
        parent=None,
        model_loader: Callable[[], list[dict[str, Any]] | None] | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.setMinimumWidth(440)

        self._user_settings = user_settings
        self._model_loader = model_loader

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)
        settings = self._user_settings.settings

        # Font settings group
        font_group = QGroupBox("Font Sizes")
        font_layout = QFormLayout()
        font_group.setLayout(font_layout)

        self.ui_font_spinbox = QSpinBox()
        self.ui_font_spinbox.setRange(8, 24)
        self.ui_font_spinbox.setValue(int(settings.get(UI_FONT_SIZE_SETTING, DEFAULT_UI_FONT_SIZE)))
        self.ui_font_spinbox.setSuffix(" pt")
        self.ui_font_spinbox.setToolTip("Font size for buttons, menus, and controls")
        font_layout.addRow("UI font size:", self.ui_font_spinbox)

        self.live_font_spinbox = QSpinBox()
        self.live_font_spinbox.setRange(10, 32)
        self.live_font_spinbox.setValue(int(settings.get(LIVE_FONT_SIZE_SETTING, DEFAULT_LIVE_FONT_SIZE)))
        self.live_font_spinbox.setSuffix(" pt")
        self.live_font_spinbox.setToolTip("Font size for the live session view")
        font_layout.addRow("Live view font size:", self.live_font_spinbox)

        layout.addWidget(font_group)

        # Text-to-speech group
        tts = self._user_settings.tts
        tts_group = QGroupBox("Read Aloud")
        tts_layout = QFormLayout()
        tts_group.setLayout(tts_layout)

        self.tts_enabled_checkbox = QCheckBox("Enable read aloud")
        self.tts_enabled_checkbox.setChecked(tts.enabled)
        tts_layout.addRow(self.tts_enabled_checkbox)

        self.tts_auto_play_checkbox = QCheckBox("Read each slide automatically when it opens")
        self.tts_auto_play_checkbox.setChecked(tts.auto_play)
        tts_layout.addRow(self.tts_auto_play_checkbox)

        self.voice_id_input = QLineEdit(tts.voice_id)
        tts_layout.addRow("Voice id:", self.voice_id_input)

        self.model_id_input = QLineEdit(tts.model_id or "")
        self.model_id_input.setPlaceholderText("Default model")
        tts_layout.addRow("Model id:", self.model_id_input)

        self.api_key_input = QLineEdit(settings.get(TTS_API_KEY_SETTING, ""))
        self.api_key_input.setEchoMode(QLineEdit.Password)
        self.api_key_input.setToolTip("Stored with your account. Leave empty to remove it.")
        tts_layout.addRow("API key:", self.api_key_input)

        layout.addWidget(tts_group)

        # Celebration group
        celebration = self._user_settings.celebration
        celebration_group = QGroupBox("Correct Answer Celebration")
        celebration_layout = QFormLayout()
        celebration_group.setLayout(celebration_layout)

        self.celebration_type_combo = QComboBox()
        self.celebration_type_combo.addItems(["default", "preset", "custom"])
        self.celebration_type_combo.setCurrentText(celebration.type)
        celebration_layout.addRow("Style:", self.celebration_type_combo)

        self.preset_combo = QComboBox()
        self.preset_combo.addItems([""] + list(CELEBRATION_PRESETS))
        self.preset_combo.setCurrentText(celebration.preset or "")
        self.preset_combo.setToolTip("Used with preset celebrations")
        celebration_layout.addRow("Preset:", self.preset_combo)

        self.phrase_input = QLineEdit(celebration.phrase or "")
        self.phrase_input.setPlaceholderText("Shown with custom celebrations")
        celebration_layout.addRow("Phrase:", self.phrase_input)

        self.confetti_checkbox = QCheckBox("Confetti")
        self.confetti_checkbox.setChecked(celebration.confetti)
        self.sound_checkbox = QCheckBox("Sound")
        self.sound_checkbox.setChecked(celebration.sound)
        effects_row = QHBoxLayout()
        effects_row.addWidget(self.confetti_checkbox)
        effects_row.addWidget(self.sound_checkbox)
        effects_row.addStretch()
        celebration_layout.addRow(effects_row)

        self.screen_effect_combo = QComboBox()
        self.screen_effect_combo.addItems(list(SCREEN_EFFECTS))
        self.screen_effect_combo.setCurrentText(celebration.screen_effect)
        celebration_layout.addRow("Screen effect:", self.screen_effect_combo)

        layout.addWidget(celebration_group)

        # Classroom assistant group
        ai = self._user_settings.ai
        ai_group = QGroupBox("Classroom Assistant")
        ai_layout = QFormLayout()
        ai_group.setLayout(ai_layout)

        self.ai_enabled_checkbox = QCheckBox("Let students ask the assistant about the current slide")
        self.ai_enabled_checkbox.setChecked(ai.enabled)
        ai_layout.addRow(self.ai_enabled_checkbox)

        self.ai_model_combo = QComboBox()
        self.ai_model_combo.setEditable(True)
        self.ai_model_combo.addItem(ai.model)
        self.ai_model_combo.setCurrentText(ai.model)
        self.load_models_button = QPushButton("Load models")
        self.load_models_button.setToolTip("List the models available with your saved API key")
        self.load_models_button.setEnabled(self._model_loader is not None)
        self.load_models_button.clicked.connect(self._load_models)  # type: ignore[arg-type]
        model_row = QHBoxLayout()
        model_row.addWidget(self.ai_model_combo, 1)
        model_row.addWidget(self.load_models_button)
        ai_layout.addRow("Model:", model_row)

        self.ai_endpoint_input = QLineEdit(ai.endpoint)
        ai_layout.addRow("Endpoint:", self.ai_endpoint_input)

        self.ai_temperature_spinbox = QDoubleSpinBox()
        self.ai_temperature_spinbox.setRange(0.0, 2.0)
        self.ai_temperature_spinbox.setSingleStep(0.1)
        self.ai_temperature_spinbox.setValue(ai.temperature)
        ai_layout.addRow("Temperature:", self.ai_temperature_spinbox)

        self.ai_api_key_input = QLineEdit(settings.get(AI_API_KEY_SETTING, ""))
        self.ai_api_key_input.setEchoMode(QLineEdit.Password)
        self.ai_api_key_input.setToolTip("Stored with your account. Leave empty to remove it.")
        ai_layout.addRow("API key:", self.ai_api_key_input)

        layout.addWidget(ai_group)

        self.hint_label = QLabel("Changes are saved to your account when you press Apply.")
        layout.addWidget(self.hint_label)

        # Buttons
        button_row = QHBoxLayout()
        button_row.addStretch()

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)  # type: ignore[arg-type]
        button_row.addWidget(self.cancel_button)

        self.apply_button = QPushButton("Apply")
        self.apply_button.clicked.connect(self.accept)  # type: ignore[arg-type]
        self.apply_button.setDefault(True)
        button_row.addWidget(self.apply_button)

        layout.addLayout(button_row)

    def _load_models(self) -> None:
        models = self._model_loader() if self._model_loader else None
        if not models:
            self.hint_label.setText("Could not load models. Save an API key first and check your connection.")
            return
        current = self.ai_model_combo.currentText()
        self.ai_model_combo.clear()
        self.ai_model_combo.addItems([model["id"] for model in models])
        self.ai_model_combo.setCurrentText(current)
        self.hint_label.setText(f"Loaded {len(models)} models.")

    def get_ui_font_size(self) -> int:
        return self.ui_font_spinbox.value()

    def get_live_font_size(self) -> int:
        return self.live_font_spinbox.value()

    def get_user_settings(self) -> UserSettings:
        """Build the updated settings record from the dialog fields."""
        settings = dict(self._user_settings.settings)
        settings[UI_FONT_SIZE_SETTING] = self.get_ui_font_size()
        settings[LIVE_FONT_SIZE_SETTING] = self.get_live_font_size()
        api_key = self.api_key_input.text().strip()
        if api_key:
            settings[TTS_API_KEY_SETTING] = api_key
        else:
            settings.pop(TTS_API_KEY_SETTING, None)
        ai_api_key = self.ai_api_key_input.text().strip()
        if ai_api_key:
            settings[AI_API_KEY_SETTING] = ai_api_key
        else:
            settings.pop(AI_API_KEY_SETTING, None)

        return UserSettings(
            user_id=self._user_settings.user_id,
            settings=settings,
            tts=TTSSettings(
                enabled=self.tts_enabled_checkbox.isChecked(),
                voice_id=self.voice_id_input.text().strip() or TTSSettings().voice_id,
                auto_play=self.tts_auto_play_checkbox.isChecked(),
                model_id=self.model_id_input.text().strip() or None,
            ),
            celebration=CelebrationSettings(
                type=self.celebration_type_combo.currentText(),
                phrase=self.phrase_input.text().strip() or None,
                preset=self.preset_combo.currentText() or None,
                confetti=self.confetti_checkbox.isChecked(),
                sound=self.sound_checkbox.isChecked(),
                screen_effect=self.screen_effect_combo.currentText(),
            ),
            ai=AISettings(
                enabled=self.ai_enabled_checkbox.isChecked(),
                model=self.ai_model_combo.currentText().strip() or AISettings().model,
                endpoint=self.ai_endpoint_input.text().strip() or AISettings().endpoint,
                temperature=round(self.ai_temperature_spinbox.value(), 2),
            ),
        )
