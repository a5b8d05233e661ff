"""
api/session.py — 멀티유저 인메모리 세션 (쿠키 기반)

각 브라우저에 UUID 세션 ID를 발급하고, 세션별로
  - ViewerSession (학생/관리자 식별 정보)
  - 현재 열려 있는 화면 객체 (응시 / 강의 상세 / 채팅 / 관리자 채팅)
를 보관한다. TTL(기본 1시간) 경과 또는 초기화 시 화면의 타이머/폴링을 정리한다.

ViewerSession 은 load()/save() 로만 읽고 쓴다.
"""

import logging
import threading
import time
import uuid
from typing import Any, Dict, List, Optional

from config import SESSION_TTL
from exam_prep_cbt.models.viewer_session import ViewerSession

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}

TEST_SCREEN = "test_screen"
COURSE_SCREEN = "course_screen"
CHAT_SCREEN = "chat_screen"
ADMIN_CHAT_SCREEN = "admin_chat_screen"
SCREEN_KEYS = (TEST_SCREEN, COURSE_SCREEN, CHAT_SCREEN, ADMIN_CHAT_SCREEN)


def _new_state() -> dict[str, Any]:
    state: dict[str, Any] = {"viewer": ViewerSession()}
    for key in SCREEN_KEYS:
        state[key] = None
    return state


def _dispose_screens(states: List[Dict[str, Any]]) -> None:
    for state in states:
        for key in SCREEN_KEYS:
            screen = state.get(key)
            if screen is not None:
                screen.dispose()


def _running_test(state: Dict[str, Any]) -> Optional[Any]:
    """응시 중/채점 중인 TestSession. 없으면 None."""
    screen = state.get(TEST_SCREEN)
    test_session = getattr(screen, "session", None)
    if test_session is not None and test_session.is_active:
        return test_session
    return None


def _is_expired(sid: str, now: float) -> bool:
    # 진행 중인 시험이 있으면 자동 제출까지 만료시키지 않는다 (_lock 안에서 호출)
    if now - _timestamps[sid] <= SESSION_TTL:
        return False
    if _running_test(_sessions[sid]) is not None:
        _timestamps[sid] = now
        return False
    return True


def create_session() -> str:
    """새 세션을 생성하고 세션 ID를 반환."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """세션 ID로 세션 데이터를 가져옴. 만료되었거나 없으면 None."""
    expired = None
    with _lock:
        if sid not in _sessions:
            return None
        if _is_expired(sid, time.time()):
            expired = _sessions.pop(sid)
            del _timestamps[sid]
        else:
            _timestamps[sid] = time.time()  # 접근 시 갱신
            return _sessions[sid]
    _dispose_screens([expired])
    return None


def get(sid: str, key: str, default=None):
    """세션에서 값 읽기."""
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    """세션에 값 쓰기."""
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


# ── ViewerSession 경계 ───────────────────────────────────────────────────────

def load(sid: str) -> ViewerSession:
    """현재 사용자 정보. 세션이 없으면 비로그인 상태."""
    viewer = get(sid, "viewer")
    return viewer.model_copy() if viewer is not None else ViewerSession()


def save(sid: str, viewer: ViewerSession) -> None:
    put(sid, "viewer", viewer.model_copy())


# ── 화면 소유권 ──────────────────────────────────────────────────────────────

def get_screen(sid: str, key: str) -> Optional[Any]:
    return get(sid, key)


def replace_screen(sid: str, key: str, screen: Any) -> None:
    """화면 교체. 이전 화면은 정리(dispose)된다."""
    previous = get(sid, key)
    put(sid, key, screen)
    if previous is not None and previous is not screen:
        previous.dispose()


def drop_screen(sid: str, key: str) -> bool:
    """화면을 닫는다. 닫을 화면이 있었으면 True."""
    previous = get(sid, key)
    if previous is None:
        return False
    put(sid, key, None)
    previous.dispose()
    return True


def reset(sid: str) -> None:
    """세션 초기화 (로그아웃). 열려 있던 화면은 모두 정리."""
    with _lock:
        if sid not in _sessions:
            return
        old = _sessions[sid]
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    _dispose_screens([old])


def cleanup_expired() -> int:
    """만료된 세션을 정리. 제거된 수 반환. 진행 중인 시험이 있는 세션은 남긴다."""
    now = time.time()
    removed: List[Dict[str, Any]] = []
    with _lock:
        expired = [sid for sid in list(_timestamps) if _is_expired(sid, now)]
        for sid in expired:
            removed.append(_sessions.pop(sid))
            del _timestamps[sid]
    _dispose_screens(removed)
    return len(removed)


def cookie_max_age(sid: str) -> int:
    """쿠키 수명 (초). 진행 중인 시험이 있으면 남은 시험 시간만큼 늘린다."""
    state = get_session(sid)
    test_session = _running_test(state) if state is not None else None
    if test_session is None:
        return SESSION_TTL
    return SESSION_TTL + test_session.time_remaining_seconds


def clear_all() -> None:
    """모든 세션 정리 (앱 종료 시)."""
    with _lock:
        states = list(_sessions.values())
        _sessions.clear()
        _timestamps.clear()
    _dispose_screens(states)
