"""Pytest configuration and shared fixtures for the CBT client tests."""

import asyncio
import copy
import json
import re
from typing import Any, Dict, List, Optional

import httpx
import pytest

from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.services.backend_client import BackendClient
from exam_prep_cbt.services.exam_service import score_answers

BASE_URL = "http://backend.test"

# 백엔드 문서 형식 그대로 (legacy 필드명)
SAMPLE_TEST_DOC: Dict[str, Any] = {
    "_id": "t1",
    "name": "Physics Mock 1",
    "duration": 30,
    "marksPerQuestion": 4,
    "negativeMarking": 1,
    "status": "active",
    "questions": [
        {
            "_id": "q1",
            "question": "2 + 2 = ?",
            "optionA": "3",
            "optionB": "4",
            "optionC": "5",
            "optionD": "",
            "correctAnswer": "B",
            "explanation": "기본 덧셈",
        },
        {
            "_id": "q2",
            "question": "SI unit of force?",
            "optionA": "Newton",
            "optionB": "Joule",
            "optionC": "Watt",
            "optionD": "Pascal",
            "correctAnswer": "A",
        },
    ],
}


async def fast_sleep(_seconds: float) -> None:
    """이벤트 루프에 한 번만 양보하는 sleep (타이머/폴링 테스트용)."""
    await asyncio.sleep(0)


async def drain(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeBackend:
    """
    REST 백엔드 대역. httpx.MockTransport 핸들러로 연결한다.
    채점은 클라이언트와 같은 score_answers 를 사용한다.
    """

    def __init__(self):
        self.tests: Dict[str, Dict[str, Any]] = {"t1": copy.deepcopy(SAMPLE_TEST_DOC)}
        self.courses: Dict[str, Dict[str, Any]] = {
            "c1": {"_id": "c1", "name": "JEE Physics", "price": 999, "mrp": 1999, "type": "recorded"},
        }
        self.content: Dict[tuple, List[Dict[str, Any]]] = {
            ("c1", "videos"): [
                {"_id": "v2", "title": "Kinematics", "order": 2, "isFree": False},
                {"_id": "v1", "title": "Intro", "order": 1, "isFree": False},
                {"_id": "v3", "title": "Free sample", "order": 3, "isFree": True},
            ],
            ("c1", "notes"): [],
            ("c1", "tests"): [
                {"_id": "t1", "name": "Physics Mock 1", "order": 1, "status": "active"},
                {"_id": "t9", "name": "Draft", "order": 0, "status": "draft"},
            ],
            ("c1", "live-classes"): [],
        }
        self.enrollments: set = set()
        self.chats: Dict[str, Dict[str, Any]] = {}
        self.messages: Dict[str, List[Dict[str, Any]]] = {}
        self.read_marks: List[tuple] = []
        self.requests: List[httpx.Request] = []
        self.submissions: List[Dict[str, Any]] = []
        self.submit_status: Optional[int] = None
        self.submit_payload: Optional[Any] = None
        self.fail_all: Optional[int] = None
        self.fail_paths: Dict[str, int] = {}

    # ── 라우팅 ──────────────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_all is not None:
            return httpx.Response(self.fail_all)
        if request.url.path in self.fail_paths:
            return httpx.Response(self.fail_paths[request.url.path])

        method = request.method
        path = request.url.path
        data = json.loads(request.content) if request.content else None

        m = re.fullmatch(r"/api/tests/([^/]+)", path)
        if m and method == "GET":
            doc = self.tests.get(m.group(1))
            return httpx.Response(200, json=doc) if doc else httpx.Response(404)

        m = re.fullmatch(r"/api/tests/([^/]+)/submit", path)
        if m and method == "POST":
            return self._submit(m.group(1), data)

        m = re.fullmatch(r"/api/courses/([^/]+)", path)
        if m and method == "GET":
            doc = self.courses.get(m.group(1))
            return httpx.Response(200, json=doc) if doc else httpx.Response(404)

        m = re.fullmatch(r"/api/courses/([^/]+)/(videos|notes|tests|live-classes)", path)
        if m and method == "GET":
            if m.group(1) not in self.courses:
                return httpx.Response(404)
            return httpx.Response(200, json=self.content.get((m.group(1), m.group(2)), []))

        m = re.fullmatch(r"/api/students/([^/]+)/enrolled/([^/]+)", path)
        if m and method == "GET":
            return httpx.Response(200, json={"enrolled": (m.group(1), m.group(2)) in self.enrollments})

        m = re.fullmatch(r"/api/students/([^/]+)/enroll", path)
        if m and method == "POST":
            self.enrollments.add((m.group(1), data["courseId"]))
            return httpx.Response(200, json={"success": True})

        if path == "/api/chats/start" and method == "POST":
            return self._start_chat(data)
        if path == "/api/chats" and method == "GET":
            return httpx.Response(200, json=list(self.chats.values()))

        m = re.fullmatch(r"/api/chats/([^/]+)/messages", path)
        if m and method == "GET":
            return httpx.Response(200, json=self.messages.get(m.group(1), []))
        if m and method == "POST":
            self.add_message(m.group(1), data["senderType"], data["message"], data["senderName"])
            return httpx.Response(201, json={"success": True})

        m = re.fullmatch(r"/api/chats/([^/]+)/read", path)
        if m and method == "PUT":
            self.read_marks.append((m.group(1), data["readerType"]))
            return httpx.Response(204)

        return httpx.Response(404)

    def _submit(self, test_id: str, data: Dict[str, Any]) -> httpx.Response:
        self.submissions.append(data)
        if self.submit_status is not None:
            return httpx.Response(self.submit_status)
        if self.submit_payload is not None:
            return httpx.Response(200, json=self.submit_payload)
        test = MockTest.model_validate(self.tests[test_id])
        result = score_answers(test, data["answers"], data["timeTaken"]).to_wire()
        result["timeTaken"] = result.pop("timeTakenSeconds")
        return httpx.Response(200, json=result)

    def _start_chat(self, data: Dict[str, Any]) -> httpx.Response:
        for chat in self.chats.values():
            if chat["studentId"] == data["studentId"]:
                return httpx.Response(200, json=chat)
        chat_id = f"chat{len(self.chats) + 1}"
        chat = {
            "_id": chat_id,
            "studentId": data["studentId"],
            "studentName": data["studentName"],
            "lastMessage": "",
            "unreadAdmin": 0,
            "unreadStudent": 0,
        }
        self.chats[chat_id] = chat
        self.messages[chat_id] = []
        return httpx.Response(200, json=chat)

    def add_message(self, chat_id: str, sender_type: str, text: str, sender_name: str = "") -> None:
        messages = self.messages.setdefault(chat_id, [])
        messages.append({
            "_id": f"m{len(messages) + 1}",
            "chatId": chat_id,
            "senderId": "admin" if sender_type == "admin" else self.chats[chat_id]["studentId"],
            "senderName": sender_name,
            "senderType": sender_type,
            "message": text,
        })
        self.chats[chat_id]["lastMessage"] = text

    @property
    def submit_calls(self) -> int:
        return len(self.submissions)


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Fixture providing an in-memory REST backend."""
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend: FakeBackend) -> BackendClient:
    """BackendClient wired to the fake backend through httpx.MockTransport."""
    return BackendClient(base_url=BASE_URL, transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def sample_test() -> MockTest:
    """The sample test parsed from its backend document."""
    return MockTest.model_validate(copy.deepcopy(SAMPLE_TEST_DOC))


@pytest.fixture
def two_question_test() -> MockTest:
    """Two questions, 4 marks each, no negative marking."""
    return MockTest.model_validate({
        "id": "t2",
        "title": "Two questions",
        "durationMinutes": 10,
        "questions": [
            {"id": "q1", "text": "Q1", "options": [{"key": "A", "value": "a"}, {"key": "B", "value": "b"}],
             "correctOptionKey": "A"},
            {"id": "q2", "text": "Q2", "options": [{"key": "A", "value": "a"}, {"key": "B", "value": "b"}],
             "correctOptionKey": "B"},
        ],
    })
