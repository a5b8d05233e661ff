"""
services/submission.py

시험 제출 처리.

상태 전이: IN_PROGRESS → SUBMITTING → COMPLETED
                                   └→ FAILED → COMPLETED (로컬 폴백 채점)

제출 버튼, 확인 대화상자, 타이머 만료가 동시에 제출을 시도할 수 있으므로
submit()은 await 전에 phase를 확인하고 바꾼다. 두 번째 호출부터는 아무 일도 하지 않는다.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.result_model import Result
from exam_prep_cbt.models.session_state import Phase, ResultSource, TestSession
from exam_prep_cbt.services.errors import BackendError
from exam_prep_cbt.services.exam_service import score_answers
from exam_prep_cbt.services.session_clock import SessionClock

logger = logging.getLogger(__name__)

# (test_id, answers, time_taken_seconds) → 서버 채점 결과
ServerScorer = Callable[[str, Dict[str, str], int], Awaitable[Result]]


class SubmitTrigger(str, Enum):
    MANUAL = "manual"
    PALETTE_CONFIRM = "palette_confirm"
    TIMER_EXPIRY = "timer_expiry"


class SubmissionOrchestrator:
    def __init__(
        self,
        test: MockTest,
        session: TestSession,
        clock: SessionClock,
        server_scorer: ServerScorer,
        now: Callable[[], float] = time.time,
    ):
        self.test = test
        self.session = session
        self.clock = clock
        self._server_scorer = server_scorer
        self._now = now
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> Optional[asyncio.Task]:
        """진행 중(또는 끝난) 제출 태스크. 아직 제출 전이면 None."""
        return self._task

    def submit(self, trigger: SubmitTrigger) -> Optional[asyncio.Task]:
        """
        제출 시작. 실제 채점은 반환된 태스크에서 진행된다.

        Returns:
            새로 시작한 제출 태스크. 이미 제출 중/완료 상태면 None (no-op).
        """
        self.clock.cancel()

        if self.session.phase != Phase.IN_PROGRESS:
            logger.info(
                f"제출 무시 ({trigger.value}): 이미 {self.session.phase.value} 상태"
            )
            return None

        self.session.phase = Phase.SUBMITTING
        time_taken = max(0, int(self._now() - self.session.started_at))
        self.session.time_taken_seconds = time_taken
        answers = dict(self.session.answers)

        logger.info(
            f"시험 {self.test.id} 제출 ({trigger.value}): "
            f"응답 {len(answers)}/{len(self.test.questions)}, 소요 {time_taken}초"
        )
        self._task = asyncio.get_running_loop().create_task(
            self._complete(answers, time_taken)
        )
        return self._task

    async def _complete(self, answers: Dict[str, str], time_taken: int) -> Result:
        try:
            result = await self._server_scorer(self.test.id, answers, time_taken)
            if result.time_taken_seconds is None:
                result = result.model_copy(update={"time_taken_seconds": time_taken})
            source = ResultSource.SERVER
        except BackendError as e:
            logger.warning(f"서버 채점 실패, 로컬 폴백 채점: {type(e).__name__}: {e}")
            result, source = self._fallback(answers, time_taken), ResultSource.FALLBACK
        except Exception:
            # 결과 화면은 항상 보여야 한다. 버그는 스택과 함께 남긴다
            logger.exception("서버 채점 경로에서 예상치 못한 오류, 로컬 폴백 채점")
            result, source = self._fallback(answers, time_taken), ResultSource.FALLBACK

        self.session.result = result
        self.session.result_source = source
        self.session.phase = Phase.COMPLETED
        return result

    def _fallback(self, answers: Dict[str, str], time_taken: int) -> Result:
        self.session.phase = Phase.FAILED
        return score_answers(self.test, answers, time_taken)
