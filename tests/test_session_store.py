"""Tests for the per-cookie session store."""

import time

import pytest

import api.session as session
from config import SESSION_TTL
from exam_prep_cbt.models.session_state import Phase, TestSession
from exam_prep_cbt.models.viewer_session import StudentData, ViewerSession


class DummyScreen:
    def __init__(self):
        self.disposed = 0

    def dispose(self):
        self.disposed += 1


class DummyTestScreen(DummyScreen):
    def __init__(self, phase: Phase, remaining: int = 600):
        super().__init__()
        self.session = TestSession(test_id="t1", phase=phase, time_remaining_seconds=remaining)


@pytest.fixture
def sid():
    sid = session.create_session()
    yield sid
    session.reset(sid)


class TestViewerBoundary:
    """Tests for load() / save()."""

    def test_new_session_is_anonymous(self, sid):
        viewer = session.load(sid)
        assert viewer.student_id is None
        assert viewer.is_admin_authenticated is False

    def test_save_then_load(self, sid):
        viewer = ViewerSession(student_data=StudentData(id="s1"), is_student_authenticated=True)
        session.save(sid, viewer)
        viewer.is_admin_authenticated = True  # 저장 이후 변경은 반영되지 않는다
        assert session.load(sid).student_id == "s1"
        assert session.load(sid).is_admin_authenticated is False

    def test_unknown_sid_loads_anonymous(self):
        assert session.load("no-such-session").student_id is None


class TestScreenOwnership:
    """Tests for screen replacement and disposal."""

    def test_replace_disposes_previous(self, sid):
        first, second = DummyScreen(), DummyScreen()
        session.replace_screen(sid, session.TEST_SCREEN, first)
        session.replace_screen(sid, session.TEST_SCREEN, second)
        assert first.disposed == 1
        assert second.disposed == 0
        assert session.get_screen(sid, session.TEST_SCREEN) is second

    def test_drop_screen(self, sid):
        screen = DummyScreen()
        session.replace_screen(sid, session.CHAT_SCREEN, screen)
        assert session.drop_screen(sid, session.CHAT_SCREEN) is True
        assert session.drop_screen(sid, session.CHAT_SCREEN) is False
        assert screen.disposed == 1

    def test_reset_disposes_all_screens(self, sid):
        screens = {key: DummyScreen() for key in session.SCREEN_KEYS}
        for key, screen in screens.items():
            session.replace_screen(sid, key, screen)
        session.reset(sid)
        assert all(s.disposed == 1 for s in screens.values())

    def test_expired_sessions_are_cleaned_up(self):
        sid = session.create_session()
        screen = DummyScreen()
        session.replace_screen(sid, session.TEST_SCREEN, screen)
        session._timestamps[sid] = 0.0
        assert session.cleanup_expired() >= 1
        assert screen.disposed == 1
        assert session.get_session(sid) is None

    def test_expired_session_disposed_on_access(self):
        sid = session.create_session()
        screen = DummyScreen()
        session.replace_screen(sid, session.COURSE_SCREEN, screen)
        session._timestamps[sid] = 0.0
        assert session.get_session(sid) is None
        assert screen.disposed == 1


class TestExpiryDuringTest:
    """Idle expiry must not cut off a test that is still running."""

    def _stale(self, sid):
        session._timestamps[sid] = time.time() - SESSION_TTL - 1

    @pytest.mark.parametrize("phase", [Phase.IN_PROGRESS, Phase.SUBMITTING])
    def test_cleanup_keeps_session_with_active_test(self, sid, phase):
        screen = DummyTestScreen(phase)
        session.replace_screen(sid, session.TEST_SCREEN, screen)
        self._stale(sid)

        session.cleanup_expired()

        assert screen.disposed == 0
        assert session.get_screen(sid, session.TEST_SCREEN) is screen
        assert time.time() - session._timestamps[sid] < SESSION_TTL

    def test_access_keeps_session_with_active_test(self, sid):
        screen = DummyTestScreen(Phase.IN_PROGRESS)
        session.replace_screen(sid, session.TEST_SCREEN, screen)
        self._stale(sid)
        assert session.get_session(sid) is not None
        assert screen.disposed == 0

    def test_completed_test_expires_normally(self):
        sid = session.create_session()
        screen = DummyTestScreen(Phase.COMPLETED)
        session.replace_screen(sid, session.TEST_SCREEN, screen)
        self._stale(sid)
        assert session.cleanup_expired() >= 1
        assert screen.disposed == 1
        assert session.get_session(sid) is None

    def test_cookie_outlives_remaining_test_time(self, sid):
        assert session.cookie_max_age(sid) == SESSION_TTL
        session.replace_screen(sid, session.TEST_SCREEN, DummyTestScreen(Phase.IN_PROGRESS, remaining=10800))
        assert session.cookie_max_age(sid) == SESSION_TTL + 10800
        session.replace_screen(sid, session.TEST_SCREEN, DummyTestScreen(Phase.COMPLETED, remaining=0))
        assert session.cookie_max_age(sid) == SESSION_TTL
