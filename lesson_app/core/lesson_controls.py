"""Teacher-side controls for a running session.

Every flag lives on the session row. The controller reads the current value
from the session sync object, writes the new value through ``SessionService``
and lets the sync object deliver the result back to every viewer. Only the
grid sort order is local to the controller.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from lesson_app.backend.tables import PresentationSessionRow
from lesson_app.core.errors import LessonAppError
from lesson_app.core.join_flow import NotificationLevel, Notifier
from lesson_app.core.progress import SortKey
from lesson_app.core.realtime_sync import RealTimeSync
from lesson_app.core.services.session_service import SessionService

logger = logging.getLogger(__name__)

NO_SESSION_MESSAGE = "No active session"


class LessonControls:
    def __init__(
        self,
        session_service: SessionService,
        session_sync: RealTimeSync,
        *,
        notify: Notifier,
    ) -> None:
        self._session_service = session_service
        self._session_sync = session_sync
        self._notify = notify
        self.sort_key = SortKey.LAST_NAME

    @property
    def session(self) -> PresentationSessionRow | None:
        return self._session_sync.data

    # -- flags ---------------------------------------------------------------

    def toggle_anonymous(self) -> PresentationSessionRow | None:
        def apply(session: PresentationSessionRow) -> PresentationSessionRow:
            return self._session_service.update_session_flags(
                session.id, anonymous_mode=not session.anonymous_mode
            )

        return self._run(apply, lambda s: "Student names hidden" if s.anonymous_mode else "Student names visible")

    def toggle_sync(self) -> PresentationSessionRow | None:
        """Lock or unlock students to the teacher's slide.

        Locking also moves every participant to the session's current slide.
        """

        def apply(session: PresentationSessionRow) -> PresentationSessionRow:
            updated = self._session_service.update_session_flags(session.id, is_synced=not session.is_synced)
            if updated.is_synced:
                self._session_service.move_all_participants(updated.id, updated.current_slide)
            return updated

        return self._run(
            apply,
            lambda s: "All students synced to your view" if s.is_synced else "Students can now navigate freely",
        )

    def toggle_pacing(self, allowed: Iterable[int] | None = None) -> PresentationSessionRow | None:
        """Turn student pacing on or off.

        Turning it on without ``allowed`` opens only the current slide.
        """

        def apply(session: PresentationSessionRow) -> PresentationSessionRow:
            if session.student_pacing_enabled:
                return self._session_service.update_session_flags(
                    session.id, student_pacing_enabled=False
                )
            indices = list(allowed) if allowed is not None else [session.current_slide]
            return self._session_service.update_session_flags(
                session.id, student_pacing_enabled=True, paced_slides=indices
            )

        return self._run(
            apply,
            lambda s: "Students limited to the selected slides"
            if s.student_pacing_enabled
            else "Students can view any slide",
        )

    def set_paced_slides(self, indices: Iterable[int]) -> PresentationSessionRow | None:
        selected = list(indices)

        def apply(session: PresentationSessionRow) -> PresentationSessionRow:
            return self._session_service.update_session_flags(session.id, paced_slides=selected)

        return self._run(apply, lambda s: f"{len(s.paced_slides)} slide(s) open to students")

    def toggle_pause(self) -> PresentationSessionRow | None:
        def apply(session: PresentationSessionRow) -> PresentationSessionRow:
            return self._session_service.update_session_flags(session.id, is_paused=not session.is_paused)

        return self._run(apply, lambda s: "Session paused" if s.is_paused else "Session resumed")

    def end_session(self) -> bool:
        session = self.session
        if session is None:
            self._notify(NotificationLevel.ERROR, NO_SESSION_MESSAGE)
            return False
        try:
            self._session_service.end_presentation_session(session.id)
        except LessonAppError as exc:
            logger.error("Ending session %s failed: %s", session.id, exc)
            self._notify(NotificationLevel.ERROR, "Failed to end session")
            return False
        self._session_sync.refresh()
        self._notify(NotificationLevel.SUCCESS, "Presentation session ended")
        return True

    def set_sort(self, key: SortKey | str) -> SortKey:
        self.sort_key = SortKey(key)
        return self.sort_key

    # -- slide navigation ----------------------------------------------------

    def go_to_slide(self, index: int, slide_count: int) -> PresentationSessionRow | None:
        if not 0 <= index < slide_count:
            return None

        def apply(session: PresentationSessionRow) -> PresentationSessionRow:
            return self._session_service.update_session_slide(session.id, index)

        return self._run(apply, None, failure_message="Failed to update slide")

    def next_slide(self, slide_count: int) -> PresentationSessionRow | None:
        session = self.session
        if session is None:
            return None
        return self.go_to_slide(session.current_slide + 1, slide_count)

    def previous_slide(self, slide_count: int) -> PresentationSessionRow | None:
        session = self.session
        if session is None:
            return None
        return self.go_to_slide(session.current_slide - 1, slide_count)

    # -- helpers -------------------------------------------------------------

    def _run(
        self,
        apply: Callable[[PresentationSessionRow], PresentationSessionRow],
        success_message: Callable[[PresentationSessionRow], str] | None,
        *,
        failure_message: str = "Failed to update the session",
    ) -> PresentationSessionRow | None:
        session = self.session
        if session is None:
            self._notify(NotificationLevel.ERROR, NO_SESSION_MESSAGE)
            return None
        try:
            updated = apply(session)
        except LessonAppError as exc:
            logger.error("Session control on %s failed: %s", session.id, exc)
            self._notify(NotificationLevel.ERROR, failure_message)
            return None
        if success_message is not None:
            self._notify(NotificationLevel.SUCCESS, success_message(updated))
        return updated
