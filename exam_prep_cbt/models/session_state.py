"""
models/session_state.py

시험 응시 상태를 담는 OMR 카드 모델.
Pydantic BaseModel 기반: 직렬화/역직렬화 및 타입 안전성 확보.
UI 코드 없음. 상태 변경은 services 계층(answer_sheet, navigator, submission)만 수행한다.
"""

import time
from enum import Enum
from typing import Dict, Optional, Set

from pydantic import BaseModel, Field

from exam_prep_cbt.models.result_model import Result


class Phase(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


class ResultSource(str, Enum):
    SERVER = "server"
    FALLBACK = "fallback"


class TestSession(BaseModel):
    """
    응시 1회분의 전체 상태.

    Attributes:
        test_id:                응시 중인 시험 ID.
        answers:                답안지. {question.id: 선택한 보기 기호}. 키가 없으면 미응답.
        flagged:                '나중에 다시 보기' 표시한 문항 ID 집합.
        current_index:          현재 문항 인덱스 (0-based).
        duration_seconds:       시험 제한 시간 (초).
        time_remaining_seconds: 남은 시간 (초). 진행 중에는 증가하지 않는다.
        phase:                  LOADING → IN_PROGRESS → SUBMITTING → COMPLETED.
        started_at:             시작 시각 (time.time() 기준 Unix timestamp).
        time_taken_seconds:     제출 시점에 벽시계로 계산한 소요 시간.
        result:                 채점 결과 (COMPLETED 이후에만 존재).
        result_source:          결과 출처 (서버 채점 / 로컬 폴백).
    """

    __test__ = False  # pytest 수집 대상 아님

    test_id: str = Field(..., description="응시 중인 시험 ID")
    answers: Dict[str, str] = Field(default_factory=dict)
    flagged: Set[str] = Field(default_factory=set)
    current_index: int = Field(default=0, ge=0)
    duration_seconds: int = Field(default=0, ge=0)
    time_remaining_seconds: int = Field(default=0, ge=0)
    phase: Phase = Field(default=Phase.LOADING)
    started_at: float = Field(default_factory=time.time)
    time_taken_seconds: Optional[int] = None
    result: Optional[Result] = None
    result_source: Optional[ResultSource] = None

    @property
    def is_open(self) -> bool:
        """답안/표시/이동 변경이 허용되는 상태인지."""
        return self.phase == Phase.IN_PROGRESS

    @property
    def is_active(self) -> bool:
        """응시 중이거나 채점 대기 중 (타이머 또는 제출 태스크가 살아 있음)."""
        return self.phase in (Phase.IN_PROGRESS, Phase.SUBMITTING)
