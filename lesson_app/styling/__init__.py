"""Styling module for LessonQt."""

from .color_palette import ColorPalette, Theme

__all__ = ["ColorPalette", "Theme"]
