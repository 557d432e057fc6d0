"""Teacher controls for a running session."""

import pytest

from lesson_app.backend.tables import Table
from lesson_app.core.errors import BackendError
from lesson_app.core.join_flow import NotificationLevel
from lesson_app.core.lesson_controls import NO_SESSION_MESSAGE, LessonControls
from lesson_app.core.progress import SortKey
from lesson_app.core.realtime_sync import RealTimeSync


@pytest.fixture
def notices():
    return []


@pytest.fixture
def session_sync(backend, session):
    sync = RealTimeSync(backend, Table.PRESENTATION_SESSIONS, "id")
    sync.set_filter_value(session.id)
    yield sync
    sync.deactivate()


@pytest.fixture
def controls(services, session_sync, notices):
    return LessonControls(
        services.sessions, session_sync, notify=lambda level, message: notices.append((level, message))
    )


class TestToggles:
    def test_anonymous(self, controls, session_sync, notices):
        controls.toggle_anonymous()
        assert session_sync.data.anonymous_mode is True
        assert notices[-1] == (NotificationLevel.SUCCESS, "Student names hidden")
        controls.toggle_anonymous()
        assert session_sync.data.anonymous_mode is False

    def test_pause(self, controls, session_sync):
        controls.toggle_pause()
        assert session_sync.data.is_paused is True

    def test_sync_on_moves_participants(self, services, controls, session, session_sync, student):
        services.sessions.join_presentation_session(session.join_code, student.id)
        controls.toggle_sync()
        services.sessions.update_student_slide(session.id, student.id, 2)
        controls.go_to_slide(1, 3)
        assert services.sessions.get_participant(session.id, student.id).current_slide == 2

        controls.toggle_sync()
        assert session_sync.data.is_synced is True
        assert services.sessions.get_participant(session.id, student.id).current_slide == 1

    def test_pacing_defaults_to_current_slide(self, controls, session_sync):
        controls.go_to_slide(2, 3)
        controls.toggle_pacing()
        assert session_sync.data.student_pacing_enabled is True
        assert session_sync.data.paced_slides == [2]
        controls.toggle_pacing()
        assert session_sync.data.student_pacing_enabled is False

    def test_pacing_with_explicit_slides(self, controls, session_sync):
        controls.toggle_pacing([0, 1])
        assert session_sync.data.paced_slides == [0, 1]
        controls.set_paced_slides([2])
        assert session_sync.data.paced_slides == [2]


class TestNavigation:
    def test_next_and_previous(self, controls, session_sync):
        controls.next_slide(3)
        controls.next_slide(3)
        assert session_sync.data.current_slide == 2
        assert controls.next_slide(3) is None
        controls.previous_slide(3)
        assert session_sync.data.current_slide == 1

    def test_out_of_range_is_ignored(self, controls, session_sync):
        assert controls.go_to_slide(5, 3) is None
        assert session_sync.data.current_slide == 0


class TestEndSession:
    def test_end_session(self, controls, session_sync, notices):
        assert controls.end_session() is True
        assert session_sync.data.ended_at is not None
        assert notices[-1] == (NotificationLevel.SUCCESS, "Presentation session ended")

    def test_without_session(self, services, backend, notices):
        sync = RealTimeSync(backend, Table.PRESENTATION_SESSIONS, "id")
        controls = LessonControls(services.sessions, sync, notify=lambda *entry: notices.append(entry))
        assert controls.end_session() is False
        assert controls.toggle_pause() is None
        assert notices == [(NotificationLevel.ERROR, NO_SESSION_MESSAGE)] * 2

    def test_backend_failure_is_reported(self, services, controls, notices, monkeypatch):
        def broken(*args, **kwargs):
            raise BackendError("offline")

        monkeypatch.setattr(services.sessions, "update_session_flags", broken)
        assert controls.toggle_pause() is None
        assert notices[-1] == (NotificationLevel.ERROR, "Failed to update the session")


class TestSort:
    def test_set_sort(self, controls):
        assert controls.sort_key is SortKey.LAST_NAME
        assert controls.set_sort("join_time") is SortKey.JOIN_TIME
