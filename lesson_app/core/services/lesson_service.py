"""Persistence of lessons and their slides."""

from __future__ import annotations

import logging
from typing import Any

from lesson_app.backend.client import BackendClient, eq, is_null
from lesson_app.backend.tables import PresentationRow, SlideRow, Table, utc_now
from lesson_app.constants.session_constants import DEFAULT_LESSON_TITLE, DEFAULT_SLIDE_TITLE
from lesson_app.core.errors import BackendError, NotFoundError
from lesson_app.core.models import Lesson, LessonSlide, slide_from_content, slide_to_content

logger = logging.getLogger(__name__)


class LessonService:
    """Reads and writes lessons through the backend."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    def create_lesson(self, user_id: str, title: str = DEFAULT_LESSON_TITLE) -> Lesson:
        """Create a lesson owned by ``user_id`` with one empty starter slide."""

        title = title.strip() or DEFAULT_LESSON_TITLE
        try:
            presentation = self._backend.insert(
                Table.PRESENTATIONS, {"title": title, "user_id": user_id}
            )
        except BackendError:
            logger.exception("Failed to create lesson for user %s", user_id)
            raise

        starter = {"title": DEFAULT_SLIDE_TITLE, "blocks": [], "layout": None}
        try:
            self._backend.insert(
                Table.SLIDES,
                {"presentation_id": presentation["id"], "slide_order": 0, "content": starter},
            )
        except BackendError:
            logger.exception("Failed to create starter slide; removing lesson %s", presentation["id"])
            self._backend.delete(Table.PRESENTATIONS, [eq("id", presentation["id"])])
            raise

        logger.info("Created lesson %s for user %s", presentation["id"], user_id)
        lesson = self.get_lesson_by_id(presentation["id"])
        if lesson is None:
            raise NotFoundError(f"Lesson {presentation['id']} vanished after creation.")
        return lesson

    def get_lessons_for_user(self, user_id: str) -> list[Lesson]:
        """Return the user's lessons, newest first."""

        try:
            presentations = self._backend.select(
                Table.PRESENTATIONS,
                [eq("user_id", user_id)],
                order_by="created_at",
                descending=True,
            )
            return [self._assemble(row) for row in presentations]
        except BackendError:
            logger.exception("Failed to load lessons for user %s", user_id)
            raise

    def get_lesson_by_id(self, lesson_id: str) -> Lesson | None:
        try:
            row = self._backend.select_one(Table.PRESENTATIONS, [eq("id", lesson_id)])
            if row is None:
                logger.warning("Lesson %s not found", lesson_id)
                return None
            return self._assemble(row)
        except BackendError:
            logger.exception("Failed to load lesson %s", lesson_id)
            raise

    def get_lesson_owner(self, lesson_id: str) -> str | None:
        try:
            row = self._backend.select_one(Table.PRESENTATIONS, [eq("id", lesson_id)])
        except BackendError:
            logger.exception("Failed to load owner of lesson %s", lesson_id)
            raise
        return row["user_id"] if row else None

    def save_lesson(self, lesson: Lesson) -> Lesson:
        """Persist lesson metadata and its slides in their current order.

        Slides that are no longer part of the lesson are deleted; the rest are
        upserted with ``slide_order`` matching their position.
        """

        now = utc_now()
        try:
            updated = self._backend.update(
                Table.PRESENTATIONS,
                {"title": lesson.title, "settings": dict(lesson.settings), "updated_at": now},
                [eq("id", lesson.id)],
            )
            if not updated:
                raise NotFoundError(f"Lesson {lesson.id} does not exist.")

            existing_ids = {
                row["id"]
                for row in self._backend.select(Table.SLIDES, [eq("presentation_id", lesson.id)])
            }
            kept_ids = {slide.id for slide in lesson.slides}
            for slide_id in existing_ids - kept_ids:
                self._backend.delete(Table.SLIDES, [eq("id", slide_id)])

            if lesson.slides:
                self._backend.upsert(
                    Table.SLIDES,
                    [
                        {
                            "id": slide.id,
                            "presentation_id": lesson.id,
                            "slide_order": index,
                            "content": slide_to_content(slide),
                            "updated_at": now,
                        }
                        for index, slide in enumerate(lesson.slides)
                    ],
                    on_conflict=("id",),
                )
        except BackendError:
            logger.exception("Failed to save lesson %s", lesson.id)
            raise

        lesson.updated_at = now
        logger.info("Saved lesson %s with %d slides", lesson.id, len(lesson.slides))
        return lesson

    def delete_lesson(self, lesson_id: str) -> None:
        """Delete a lesson after ending any session still presenting it."""

        try:
            self._backend.update(
                Table.PRESENTATION_SESSIONS,
                {"ended_at": utc_now()},
                [eq("presentation_id", lesson_id), is_null("ended_at")],
            )
            self._backend.delete(Table.SLIDES, [eq("presentation_id", lesson_id)])
            self._backend.delete(Table.PRESENTATIONS, [eq("id", lesson_id)])
        except BackendError:
            logger.exception("Failed to delete lesson %s", lesson_id)
            raise
        logger.info("Deleted lesson %s", lesson_id)

    def _assemble(self, row: dict[str, Any]) -> Lesson:
        presentation = PresentationRow.model_validate(row)
        slide_rows = self._backend.select(
            Table.SLIDES, [eq("presentation_id", presentation.id)], order_by="slide_order"
        )
        slides: list[LessonSlide] = []
        for slide_row in slide_rows:
            slide = SlideRow.model_validate(slide_row)
            slides.append(slide_from_content(slide.id, slide.content))
        return Lesson(
            id=presentation.id,
            title=presentation.title,
            created_by=presentation.user_id,
            created_at=presentation.created_at,
            updated_at=presentation.updated_at,
            slides=slides,
            settings=dict(presentation.settings),
        )
