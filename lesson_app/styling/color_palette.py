"""Color palette for LessonQt supporting light and dark themes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Theme(Enum):
    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class ThemeColors:
    """One color in both themes."""
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Centralized color definitions for the console and the slide pages."""

    TEXT_PRIMARY = ThemeColors(light="#1B1F24", dark="#F5F5F5")
    TEXT_MUTED = ThemeColors(light="#6B7280", dark="#A3A3A3")

    BACKGROUND_PRIMARY = ThemeColors(light="#FFFFFF", dark="#1E1E1E")
    BACKGROUND_SECONDARY = ThemeColors(light="#F4F6F8", dark="#2A2A2A")

    ACCENT = ThemeColors(light="#2563EB", dark="#60A5FA")
    BORDER = ThemeColors(light="#D6DAE0", dark="#4B4B4B")

    # Progress grid cells
    STATUS_CORRECT = ThemeColors(light="#15803D", dark="#4ADE80")
    STATUS_INCORRECT = ThemeColors(light="#DC2626", dark="#F87171")
    STATUS_PENDING = ThemeColors(light="#D97706", dark="#FBBF24")
    STATUS_MIXED = ThemeColors(light="#7C3AED", dark="#A78BFA")
    STATUS_NOT_ATTEMPTED = ThemeColors(light="#D1D5DB", dark="#52525B")
    CURRENT_SLIDE_OUTLINE = ThemeColors(light="#2563EB", dark="#60A5FA")

    # Session banners
    PAUSED_BANNER = ThemeColors(light="#FEF3C7", dark="#78350F")
