"""
screens/course_detail.py

강의 상세 화면: 영상/노트/모의고사/라이브 수업 목록과 열람 가능 여부.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config import LIVE_CLASS_POLL_SECONDS
from exam_prep_cbt.models.content_model import ContentItem, ContentKind, Course
from exam_prep_cbt.models.viewer_session import ViewerSession
from exam_prep_cbt.services.backend_client import BackendClient
from exam_prep_cbt.services.entitlement import ListingRow, annotate_listing
from exam_prep_cbt.services.errors import BackendError, NotFoundFailure, ValidationFailure
from exam_prep_cbt.services.poller import PollHandle, start_polling

logger = logging.getLogger(__name__)


class CourseDetailScreen:
    def __init__(
        self,
        backend: BackendClient,
        viewer: ViewerSession,
        live_poll_interval: float = LIVE_CLASS_POLL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.viewer = viewer
        self.course: Optional[Course] = None
        self.enrolled = False
        self.items: Dict[ContentKind, List[ContentItem]] = {kind: [] for kind in ContentKind}
        self._live_poll_interval = live_poll_interval
        self._sleep = sleep
        self._live_poller: Optional[PollHandle] = None

    async def load(self, course_id: str) -> Course:
        """
        강의, 콘텐츠 4종, 수강 여부를 불러온다.
        강의 조회 실패만 화면 오류(NotFoundFailure 등)이고, 목록은 종류별로 실패 시 빈 목록.
        """
        self.course = await self.backend.get_course(course_id)
        lists = await asyncio.gather(
            *(self._fetch_listing(course_id, kind) for kind in ContentKind)
        )
        for kind, items in zip(ContentKind, lists):
            self._set_items(kind, items)
        self.enrolled = await self._check_enrollment()
        logger.info(
            f"강의 {course_id} 로드: "
            + ", ".join(f"{k.value} {len(v)}" for k, v in self.items.items())
            + f" (수강 {'O' if self.enrolled else 'X'})"
        )
        return self.course

    async def _fetch_listing(self, course_id: str, kind: ContentKind) -> List[ContentItem]:
        try:
            return await self.backend.list_content(course_id, kind)
        except BackendError as e:
            logger.warning(f"강의 {course_id} {kind.value} 목록 조회 실패, 빈 목록으로 표시: {e}")
            return []

    def _set_items(self, kind: ContentKind, items: List[ContentItem]) -> None:
        if kind == ContentKind.TEST:
            # 비공개/초안 시험은 목록에서 제외
            items = [item for item in items if item.status == "active"]
        self.items[kind] = items

    async def _check_enrollment(self) -> bool:
        student_id = self.viewer.student_id
        if student_id is None or self.course is None:
            return False
        try:
            return await self.backend.is_enrolled(student_id, self.course.id)
        except BackendError as e:
            logger.warning(f"수강 여부 조회 실패, 미등록으로 처리: {e}")
            return False

    # ── 목록 / 열람 권한 ─────────────────────────────────────────────────────

    def listing(self, kind: ContentKind) -> List[ListingRow]:
        return annotate_listing(self.items[kind], self.enrolled)

    def content_view(self) -> Dict[str, Any]:
        course = None
        if self.course is not None:
            course = {**self.course.model_dump(), "isFree": self.course.is_free}
        return {
            "course": course,
            "enrolled": self.enrolled,
            "content": {
                kind.value: [
                    {
                        "id": row.item.id,
                        "title": row.item.title,
                        "isFree": row.item.is_free,
                        "order": row.item.order,
                        "position": row.position_index,
                        "accessible": row.accessible,
                    }
                    for row in self.listing(kind)
                ]
                for kind in ContentKind
            },
        }

    def can_open(self, kind: ContentKind, item_id: str) -> bool:
        """항목을 열 때 다시 판정한다. 목록에 없는 항목이면 NotFoundFailure."""
        for row in self.listing(kind):
            if row.item.id == item_id:
                return row.accessible
        raise NotFoundFailure(f"{kind.value}/{item_id} 항목이 없습니다.")

    # ── 수강 등록 ────────────────────────────────────────────────────────────

    async def enroll(self) -> bool:
        student_id = self.viewer.student_id
        if student_id is None:
            raise ValidationFailure("수강 등록은 학생 로그인 후에 가능합니다.")
        if self.course is None:
            raise NotFoundFailure("강의가 로드되지 않았습니다.")
        if self.enrolled:
            return True
        await self.backend.enroll(student_id, self.course.id)
        self.enrolled = True
        logger.info(f"수강 등록: student={student_id}, course={self.course.id}")
        return True

    # ── 라이브 수업 새로고침 ─────────────────────────────────────────────────

    async def refresh_live_classes(self) -> None:
        items = await self.backend.list_content(self.course.id, ContentKind.LIVE_CLASS)
        self._set_items(ContentKind.LIVE_CLASS, items)

    def start_live_refresh(self) -> PollHandle:
        if self._live_poller is not None and self._live_poller.active:
            return self._live_poller
        self._live_poller = start_polling(
            self.refresh_live_classes,
            self._live_poll_interval,
            name=f"live-classes:{self.course.id}",
            immediate=False,
            sleep=self._sleep,
        )
        return self._live_poller

    def dispose(self) -> None:
        if self._live_poller is not None:
            self._live_poller.cancel()
            self._live_poller = None
