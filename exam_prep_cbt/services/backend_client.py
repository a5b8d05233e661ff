"""
services/backend_client.py

REST 백엔드 클라이언트 (httpx.AsyncClient).

Public API:
  - get_test / submit_test                    : 모의고사 문서 조회, 서버 채점 제출
  - get_course / list_content                 : 강의 및 콘텐츠 목록 (영상/노트/모의고사/라이브)
  - is_enrolled / enroll                      : 수강 등록 조회 및 등록
  - start_chat / list_chats / list_messages /
    send_message / mark_read                  : 상담 채팅

설계 원칙:
- 응답은 경계에서 바로 pydantic 모델로 검증 (untyped dict를 안쪽으로 넘기지 않음)
- 전송 오류/비정상 상태 코드 → NetworkFailure, 404 → NotFoundFailure,
  스키마 불일치 → ValidationFailure
- 재시도하지 않는다. 재시도 여부는 호출한 화면이 결정.
"""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config import BACKEND_TIMEOUT, BACKEND_URL
from exam_prep_cbt.models.chat_model import ChatMessage, ChatThread, SenderType
from exam_prep_cbt.models.content_model import ContentItem, ContentKind, Course
from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.result_model import Result
from exam_prep_cbt.services.errors import NetworkFailure, NotFoundFailure, ValidationFailure

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ANONYMOUS_STUDENT_ID = "anonymous"


def _parse(model: Type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(f"{model.__name__} 응답 형식 오류: {e}") from e


def _parse_list(model: Type[ModelT], payload: Any, **extra: Any) -> List[ModelT]:
    if not isinstance(payload, list):
        raise ValidationFailure(f"{model.__name__} 목록 응답이 배열이 아닙니다.")
    items = []
    for raw in payload:
        if extra and isinstance(raw, dict):
            raw = {**raw, **extra}
        items.append(_parse(model, raw))
    return items


class BackendClient:
    """
    Attributes:
        base_url: 백엔드 주소 (예: "http://127.0.0.1:5000")
        timeout:  요청 타임아웃 (초)
    """

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        timeout: float = BACKEND_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        logger.debug(f"BackendClient initialized with base_url: {self.base_url}")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── 공통 요청 ────────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} 전송 실패: {type(e).__name__}: {e}")
            raise NetworkFailure(f"백엔드 연결 실패: {e}") from e

        if response.status_code == 404:
            raise NotFoundFailure(f"{path} 를 찾을 수 없습니다.")
        if not response.is_success:
            logger.warning(f"{method} {path} 비정상 응답: {response.status_code}")
            raise NetworkFailure(
                f"백엔드 오류 ({response.status_code})", status_code=response.status_code
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ValidationFailure(f"{path} 응답이 JSON이 아닙니다.") from e

    # ── 모의고사 ─────────────────────────────────────────────────────────────

    async def get_test(self, test_id: str) -> MockTest:
        payload = await self._request("GET", f"/api/tests/{test_id}")
        return _parse(MockTest, payload)

    async def submit_test(
        self,
        test_id: str,
        student_id: Optional[str],
        answers: Dict[str, str],
        time_taken: int,
    ) -> Result:
        """서버 채점. 실패 시 예외를 그대로 올린다 (폴백은 SubmissionOrchestrator 담당)."""
        body = {
            "studentId": student_id or ANONYMOUS_STUDENT_ID,
            "answers": answers,
            "timeTaken": time_taken,
        }
        payload = await self._request("POST", f"/api/tests/{test_id}/submit", json=body)
        try:
            return Result.from_wire(payload)
        except ValidationError as e:
            raise ValidationFailure(f"채점 결과 형식 오류: {e}") from e

    # ── 강의 / 콘텐츠 ────────────────────────────────────────────────────────

    async def get_course(self, course_id: str) -> Course:
        payload = await self._request("GET", f"/api/courses/{course_id}")
        return _parse(Course, payload)

    async def list_content(self, course_id: str, kind: ContentKind) -> List[ContentItem]:
        payload = await self._request("GET", f"/api/courses/{course_id}/{kind.value}")
        return _parse_list(ContentItem, payload, kind=kind.value)

    # ── 수강 등록 ────────────────────────────────────────────────────────────

    async def is_enrolled(self, student_id: str, course_id: str) -> bool:
        payload = await self._request("GET", f"/api/students/{student_id}/enrolled/{course_id}")
        if isinstance(payload, bool):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get("enrolled"), bool):
            return payload["enrolled"]
        raise ValidationFailure("수강 등록 응답 형식 오류")

    async def enroll(self, student_id: str, course_id: str) -> None:
        await self._request("POST", f"/api/students/{student_id}/enroll", json={"courseId": course_id})

    # ── 상담 채팅 ────────────────────────────────────────────────────────────

    async def start_chat(self, student_id: str, student_name: str) -> ChatThread:
        payload = await self._request(
            "POST", "/api/chats/start",
            json={"studentId": student_id, "studentName": student_name},
        )
        return _parse(ChatThread, payload)

    async def list_chats(self) -> List[ChatThread]:
        payload = await self._request("GET", "/api/chats")
        return _parse_list(ChatThread, payload)

    async def list_messages(self, chat_id: str) -> List[ChatMessage]:
        payload = await self._request("GET", f"/api/chats/{chat_id}/messages")
        return _parse_list(ChatMessage, payload)

    async def send_message(
        self,
        chat_id: str,
        sender_id: str,
        sender_name: str,
        sender_type: SenderType,
        message: str,
    ) -> None:
        await self._request(
            "POST", f"/api/chats/{chat_id}/messages",
            json={
                "senderId": sender_id,
                "senderName": sender_name,
                "senderType": sender_type.value,
                "message": message,
            },
        )

    async def mark_read(self, chat_id: str, reader_type: SenderType) -> None:
        await self._request("PUT", f"/api/chats/{chat_id}/read", json={"readerType": reader_type.value})
