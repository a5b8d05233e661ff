"""
api/routes.py — FastAPI 엔드포인트

브라우저 한 세션(쿠키)당 화면 종류별로 하나씩 열려 있다.
서비스 오류 → HTTP 상태 코드:
  NotFoundFailure 404 / ValidationFailure 422 / SessionClosed 409 / NetworkFailure 503
"""

import logging
from typing import Dict, Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

import api.session as session
from exam_prep_cbt.models.content_model import ContentKind
from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.viewer_session import StudentData, ViewerSession
from exam_prep_cbt.screens.chat import AdminChatScreen, ChatScreen
from exam_prep_cbt.screens.course_detail import CourseDetailScreen
from exam_prep_cbt.screens.test_taking import TestTakingScreen
from exam_prep_cbt.services.backend_client import BackendClient
from exam_prep_cbt.services.errors import (
    BackendError,
    NetworkFailure,
    NotFoundFailure,
    SessionClosed,
    ValidationFailure,
)
from exam_prep_cbt.services.exam_service import score_answers
from exam_prep_cbt.services.submission import SubmitTrigger

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

_BODY_CONFIG = {"populate_by_name": True}


class StudentLoginBody(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    email: str = ""
    phone: str = ""


class AnswerBody(BaseModel):
    question_id: str = Field(..., alias="questionId")
    option_key: str = Field("", alias="optionKey")

    model_config = _BODY_CONFIG


class QuestionRefBody(BaseModel):
    question_id: str = Field(..., alias="questionId")

    model_config = _BODY_CONFIG


class NavigateBody(BaseModel):
    index: Optional[int] = None
    direction: Optional[Literal["next", "prev"]] = None


class SubmitBody(BaseModel):
    trigger: SubmitTrigger = SubmitTrigger.MANUAL


class MessageBody(BaseModel):
    message: str


class GradeBody(BaseModel):
    test: MockTest
    answers: Dict[str, str] = Field(default_factory=dict)
    time_taken: Optional[int] = Field(None, ge=0, alias="timeTaken")

    model_config = _BODY_CONFIG


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundFailure):
        return HTTPException(status_code=404, detail=str(e) or "찾을 수 없습니다.")
    if isinstance(e, ValidationFailure):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, SessionClosed):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, NetworkFailure):
        return HTTPException(
            status_code=503,
            detail="서버에 연결할 수 없습니다. 잠시 후 다시 시도해 주세요.",
        )
    logger.error(f"처리되지 않은 백엔드 오류: {type(e).__name__}: {e}")
    return HTTPException(status_code=500, detail="알 수 없는 오류가 발생했습니다.")


def _sid(request: Request) -> str:
    return request.state.session_id


def _backend(request: Request) -> BackendClient:
    return request.app.state.backend


def _require_student(viewer: ViewerSession) -> None:
    if viewer.student_id is None:
        raise HTTPException(status_code=401, detail="학생 로그인이 필요합니다.")


def _require_admin(viewer: ViewerSession) -> None:
    if not viewer.is_admin_authenticated:
        raise HTTPException(status_code=403, detail="관리자만 사용할 수 있습니다.")


def _screen(request: Request, key: str, label: str):
    screen = session.get_screen(_sid(request), key)
    if screen is None:
        raise HTTPException(status_code=404, detail=f"열려 있는 {label} 화면이 없습니다.")
    return screen


def _test_screen(request: Request) -> TestTakingScreen:
    return _screen(request, session.TEST_SCREEN, "응시")


# ── 사용자 세션 ──────────────────────────────────────────────────────────────

@router.post("/api/session/student")
async def login_student(body: StudentLoginBody, request: Request):
    viewer = session.load(_sid(request))
    viewer.student_data = StudentData(**body.model_dump())
    viewer.is_student_authenticated = True
    session.save(_sid(request), viewer)
    return {"ok": True, "studentId": viewer.student_id}


@router.post("/api/session/admin")
async def login_admin(request: Request):
    # 인증은 범위 밖: 관리자 화면 진입 플래그만 세운다
    viewer = session.load(_sid(request))
    viewer.is_admin_authenticated = True
    session.save(_sid(request), viewer)
    return {"ok": True}


@router.post("/api/session/logout")
async def logout(request: Request):
    session.reset(_sid(request))
    return {"ok": True}


@router.get("/api/session")
async def get_viewer(request: Request):
    viewer = session.load(_sid(request))
    return {
        "student": viewer.student_data.model_dump() if viewer.student_data else None,
        "isStudentAuthenticated": viewer.is_student_authenticated,
        "isAdminAuthenticated": viewer.is_admin_authenticated,
    }


# ── 모의고사 응시 ────────────────────────────────────────────────────────────

@router.post("/api/tests/{test_id}/start")
async def start_test(test_id: str, request: Request):
    screen = TestTakingScreen(_backend(request), session.load(_sid(request)))
    try:
        await screen.load(test_id)
    except BackendError as e:
        screen.dispose()
        raise _http_error(e) from e
    session.replace_screen(_sid(request), session.TEST_SCREEN, screen)
    return screen.state()


@router.get("/api/test/state")
async def get_test_state(request: Request):
    return _test_screen(request).state()


@router.get("/api/test/question/{index}")
async def get_question(index: int, request: Request):
    screen = _test_screen(request)
    try:
        return screen.question_view(index)
    except ValidationFailure as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/api/test/answer")
async def save_answer(body: AnswerBody, request: Request):
    screen = _test_screen(request)
    try:
        screen.select(body.question_id, body.option_key)
    except (ValidationFailure, SessionClosed) as e:
        raise _http_error(e) from e
    return {"ok": True, "progress": screen.sheet.progress()}


@router.post("/api/test/clear")
async def clear_answer(body: QuestionRefBody, request: Request):
    screen = _test_screen(request)
    try:
        screen.clear(body.question_id)
    except (ValidationFailure, SessionClosed) as e:
        raise _http_error(e) from e
    return {"ok": True, "progress": screen.sheet.progress()}


@router.post("/api/test/flag")
async def toggle_flag(body: QuestionRefBody, request: Request):
    screen = _test_screen(request)
    try:
        flagged = screen.toggle_flag(body.question_id)
    except (ValidationFailure, SessionClosed) as e:
        raise _http_error(e) from e
    return {"ok": True, "flagged": flagged}


@router.post("/api/test/navigate")
async def navigate(body: NavigateBody, request: Request):
    screen = _test_screen(request)
    try:
        if body.direction == "next":
            idx = screen.next()
        elif body.direction == "prev":
            idx = screen.prev()
        elif body.index is not None:
            idx = screen.goto(body.index)
        else:
            raise HTTPException(status_code=422, detail="index 또는 direction 이 필요합니다.")
    except SessionClosed as e:
        raise _http_error(e) from e
    return {"ok": True, "index": idx}


@router.get("/api/test/palette")
async def get_palette(request: Request):
    return {"palette": _test_screen(request).palette()}


@router.post("/api/test/submit")
async def submit_test(request: Request, body: Optional[SubmitBody] = None):
    screen = _test_screen(request)
    trigger = body.trigger if body else SubmitTrigger.MANUAL
    screen.submit(trigger)
    await screen.wait_result()
    try:
        return screen.result_view()
    except SessionClosed as e:
        raise _http_error(e) from e


@router.get("/api/test/result")
async def get_result(request: Request):
    screen = _test_screen(request)
    try:
        return screen.result_view()
    except SessionClosed as e:
        raise _http_error(e) from e


@router.post("/api/test/leave")
async def leave_test(request: Request):
    closed = session.drop_screen(_sid(request), session.TEST_SCREEN)
    return {"ok": True, "closed": closed}


# ── 강의 / 콘텐츠 ────────────────────────────────────────────────────────────

async def _course_screen(request: Request, course_id: str) -> CourseDetailScreen:
    screen: Optional[CourseDetailScreen] = session.get_screen(_sid(request), session.COURSE_SCREEN)
    if screen is not None and screen.course is not None and screen.course.id == course_id:
        return screen

    screen = CourseDetailScreen(_backend(request), session.load(_sid(request)))
    try:
        await screen.load(course_id)
    except BackendError as e:
        raise _http_error(e) from e
    screen.start_live_refresh()
    session.replace_screen(_sid(request), session.COURSE_SCREEN, screen)
    return screen


@router.get("/api/courses/{course_id}/content")
async def get_course_content(course_id: str, request: Request):
    # 목록 진입마다 새로 불러온다 (수강 여부가 바뀌었을 수 있음)
    session.drop_screen(_sid(request), session.COURSE_SCREEN)
    screen = await _course_screen(request, course_id)
    return screen.content_view()


@router.post("/api/courses/{course_id}/enroll")
async def enroll_course(course_id: str, request: Request):
    _require_student(session.load(_sid(request)))
    screen = await _course_screen(request, course_id)
    try:
        await screen.enroll()
    except BackendError as e:
        raise _http_error(e) from e
    return {"ok": True, "enrolled": screen.enrolled}


@router.get("/api/courses/{course_id}/{kind}/{item_id}/access")
async def check_access(course_id: str, kind: ContentKind, item_id: str, request: Request):
    screen = await _course_screen(request, course_id)
    try:
        accessible = screen.can_open(kind, item_id)
    except NotFoundFailure as e:
        raise _http_error(e) from e
    return {"accessible": accessible, "enrolled": screen.enrolled}


# ── 상담 채팅 (학생) ─────────────────────────────────────────────────────────

def _chat_screen(request: Request) -> ChatScreen:
    return _screen(request, session.CHAT_SCREEN, "채팅")


@router.post("/api/chat/start")
async def start_chat(request: Request):
    viewer = session.load(_sid(request))
    _require_student(viewer)
    screen = ChatScreen(_backend(request), viewer)
    try:
        await screen.open()
    except BackendError as e:
        screen.dispose()
        raise _http_error(e) from e
    session.replace_screen(_sid(request), session.CHAT_SCREEN, screen)
    return screen.snapshot()


@router.get("/api/chat/messages")
async def get_chat_messages(request: Request):
    return _chat_screen(request).snapshot()


@router.post("/api/chat/messages")
async def send_chat_message(body: MessageBody, request: Request):
    screen = _chat_screen(request)
    try:
        await screen.send(body.message)
    except (BackendError, SessionClosed) as e:
        raise _http_error(e) from e
    return screen.snapshot()


@router.post("/api/chat/close")
async def close_chat(request: Request):
    closed = session.drop_screen(_sid(request), session.CHAT_SCREEN)
    return {"ok": True, "closed": closed}


# ── 상담 채팅 (관리자) ───────────────────────────────────────────────────────

def _admin_chat_screen(request: Request) -> AdminChatScreen:
    _require_admin(session.load(_sid(request)))
    return _screen(request, session.ADMIN_CHAT_SCREEN, "관리자 채팅")


@router.post("/api/admin/chats/open")
async def open_admin_chats(request: Request):
    _require_admin(session.load(_sid(request)))
    screen = AdminChatScreen(_backend(request))
    try:
        await screen.open()
    except BackendError as e:
        screen.dispose()
        raise _http_error(e) from e
    session.replace_screen(_sid(request), session.ADMIN_CHAT_SCREEN, screen)
    return screen.snapshot()


@router.get("/api/admin/chats")
async def get_admin_chats(request: Request):
    return _admin_chat_screen(request).snapshot()


@router.post("/api/admin/chats/{chat_id}/select")
async def select_admin_chat(chat_id: str, request: Request):
    screen = _admin_chat_screen(request)
    try:
        await screen.select(chat_id)
    except BackendError as e:
        raise _http_error(e) from e
    return screen.snapshot()


@router.post("/api/admin/chats/reply")
async def reply_admin_chat(body: MessageBody, request: Request):
    screen = _admin_chat_screen(request)
    try:
        await screen.reply(body.message)
    except (BackendError, SessionClosed) as e:
        raise _http_error(e) from e
    return screen.snapshot()


@router.post("/api/admin/chats/close")
async def close_admin_chats(request: Request):
    closed = session.drop_screen(_sid(request), session.ADMIN_CHAT_SCREEN)
    return {"ok": True, "closed": closed}


# ── 채점 (서버 측 기준 구현) ─────────────────────────────────────────────────

@router.post("/api/grade")
async def grade(body: GradeBody):
    result = score_answers(body.test, body.answers, body.time_taken)
    return result.to_wire()
