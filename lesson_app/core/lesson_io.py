"""Import and export lessons as JSON files.

File format::

    {
      "format": "lessonqt-lesson",
      "version": 1,
      "title": "Fractions",
      "settings": {},
      "slides": [
        {"title": "Intro", "blocks": [{"id": "b1", "type": "text", "content": "..."}],
         "layout": null}
      ]
    }

Imported slides get fresh ids so the same file can be imported twice.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lesson_app.core.models import Lesson, LessonSlide, slide_from_content, slide_to_content

FORMAT_NAME = "lessonqt-lesson"
FORMAT_VERSION = 1


class LessonImportError(Exception):
    """Raised when a lesson file cannot be parsed."""


@dataclass(slots=True)
class ImportedLesson:
    source_path: Path
    title: str
    slides: list[LessonSlide]
    settings: dict[str, Any]


def save_lesson_to_file(file_path: Path, lesson: Lesson) -> None:
    if not lesson.slides:
        raise ValueError("Cannot export a lesson without slides.")
    document = {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "title": lesson.title,
        "settings": lesson.settings,
        "slides": [slide_to_content(slide) for slide in lesson.slides],
    }
    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def load_lesson_from_file(file_path: Path) -> ImportedLesson:
    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LessonImportError(f"{file_path.name} is not valid JSON: {exc}") from exc

    if not isinstance(document, dict) or document.get("format") != FORMAT_NAME:
        raise LessonImportError(f"{file_path.name} is not a LessonQt lesson file.")
    if document.get("version") != FORMAT_VERSION:
        raise LessonImportError(f"Unsupported lesson file version: {document.get('version')!r}")

    raw_slides = document.get("slides")
    if not isinstance(raw_slides, list) or not raw_slides:
        raise LessonImportError("Lesson file did not contain any slides.")

    slides: list[LessonSlide] = []
    for number, content in enumerate(raw_slides, start=1):
        if not isinstance(content, dict):
            raise LessonImportError(f"Slide {number} is not an object.")
        try:
            slides.append(slide_from_content(str(uuid.uuid4()), content))
        except ValueError as exc:
            raise LessonImportError(f"Slide {number}: {exc}") from exc

    title = str(document.get("title") or file_path.stem).strip()
    settings = document.get("settings") or {}
    if not isinstance(settings, dict):
        raise LessonImportError("Lesson settings must be an object.")
    return ImportedLesson(source_path=file_path, title=title, slides=slides, settings=settings)
