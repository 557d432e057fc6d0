"""Qt and web stylesheets built from the palette."""

from lesson_app.core.progress import SlideStatus

from .color_palette import ColorPalette, Theme, ThemeColors

STATUS_COLORS: dict[SlideStatus, ThemeColors] = {
    SlideStatus.NOT_ATTEMPTED: ColorPalette.STATUS_NOT_ATTEMPTED,
    SlideStatus.PENDING: ColorPalette.STATUS_PENDING,
    SlideStatus.CORRECT: ColorPalette.STATUS_CORRECT,
    SlideStatus.INCORRECT: ColorPalette.STATUS_INCORRECT,
    SlideStatus.MIXED: ColorPalette.STATUS_MIXED,
}

STATUS_SYMBOLS: dict[SlideStatus, str] = {
    SlideStatus.NOT_ATTEMPTED: "○",
    SlideStatus.PENDING: "?",
    SlideStatus.CORRECT: "✓",
    SlideStatus.INCORRECT: "✗",
    SlideStatus.MIXED: "±",
}


class Styles:
    @staticmethod
    def get_main_window_style(theme: Theme = Theme.LIGHT) -> str:
        return f"""
            QMainWindow, QDialog {{
                background-color: {ColorPalette.BACKGROUND_PRIMARY.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
            }}
            QWidget {{
                font-family: 'Segoe UI', 'Roboto', sans-serif;
                font-size: 14px;
            }}
            QPushButton {{
                background-color: {ColorPalette.BACKGROUND_SECONDARY.get(theme)};
                border: 1px solid {ColorPalette.BORDER.get(theme)};
                border-radius: 4px;
                padding: 6px 12px;
            }}
            QPushButton:checked {{
                background-color: {ColorPalette.ACCENT.get(theme)};
                color: {ColorPalette.BACKGROUND_PRIMARY.get(theme)};
                border: 1px solid {ColorPalette.ACCENT.get(theme)};
            }}
            QListWidget, QTableWidget {{
                border: 1px solid {ColorPalette.BORDER.get(theme)};
                border-radius: 4px;
            }}
            QGroupBox {{
                border: 1px solid {ColorPalette.BORDER.get(theme)};
                border-radius: 6px;
                margin-top: 6px;
                padding-top: 10px;
            }}
        """

    @staticmethod
    def get_status_label_style() -> str:
        return "font-size: 12pt; font-weight: bold;"

    @staticmethod
    def get_slide_page_css(theme: Theme = Theme.LIGHT) -> str:
        """CSS for rendered slides in the preview and on the student page."""

        return f"""
      body {{ font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 1rem;
             background: {ColorPalette.BACKGROUND_PRIMARY.get(theme)}; color: {ColorPalette.TEXT_PRIMARY.get(theme)}; }}
      h1.slide-title {{ font-size: 1.6rem; margin: 0 0 1rem 0; }}
      .slide-grid {{ display: grid; gap: 1rem; }}
      .block {{ padding: 0.75rem; border: 1px solid {ColorPalette.BORDER.get(theme)}; border-radius: 6px; overflow: auto; }}
      .block img {{ max-width: 100%; height: auto; }}
      .block.question .options {{ list-style: none; padding: 0; }}
      .block.question .options li.correct {{ color: {ColorPalette.STATUS_CORRECT.get(theme)}; font-weight: bold; }}
      .block.graph .axes {{ color: {ColorPalette.TEXT_MUTED.get(theme)}; font-size: 0.9rem; }}
      .banner {{ padding: 0.5rem 1rem; border-radius: 6px; margin-bottom: 1rem;
                 background: {ColorPalette.PAUSED_BANNER.get(theme)}; }}
      .notice {{ color: {ColorPalette.TEXT_MUTED.get(theme)}; }}
      button, input, textarea {{ font-size: 1rem; }}
        """
