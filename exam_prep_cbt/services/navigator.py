"""
services/navigator.py

문항 이동 및 문제 번호 팔레트.

상태 판정 (답안지 기준):
  표시 + 답함   → flagged-answered
  표시 + 미답   → flagged
  미표시 + 답함 → answered
  그 외         → unanswered
"""

from enum import Enum
from typing import Dict, List

from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.session_state import TestSession
from exam_prep_cbt.services.answer_sheet import AnswerSheet
from exam_prep_cbt.services.errors import SessionClosed


class QuestionStatus(str, Enum):
    UNANSWERED = "unanswered"
    ANSWERED = "answered"
    FLAGGED = "flagged"
    FLAGGED_ANSWERED = "flagged-answered"


def derive_status(answered: bool, flagged: bool) -> QuestionStatus:
    if flagged and answered:
        return QuestionStatus.FLAGGED_ANSWERED
    if flagged:
        return QuestionStatus.FLAGGED
    if answered:
        return QuestionStatus.ANSWERED
    return QuestionStatus.UNANSWERED


class Navigator:
    def __init__(self, test: MockTest, session: TestSession, sheet: AnswerSheet):
        self.test = test
        self.session = session
        self.sheet = sheet

    @property
    def question_count(self) -> int:
        return len(self.test.questions)

    @property
    def current_index(self) -> int:
        return self.session.current_index

    @property
    def has_prev(self) -> bool:
        return self.current_index > 0

    @property
    def has_next(self) -> bool:
        return self.current_index < self.question_count - 1

    def status_of(self, question_id: str) -> QuestionStatus:
        return derive_status(self.sheet.is_answered(question_id), self.sheet.is_flagged(question_id))

    def goto(self, index: int) -> int:
        """[0, 문항 수-1] 범위로 보정해서 이동. 이동한 인덱스를 반환."""
        if not self.session.is_open:
            raise SessionClosed("제출된 시험은 이동할 수 없습니다.")
        if self.question_count == 0:
            return 0
        idx = max(0, min(index, self.question_count - 1))
        self.session.current_index = idx
        return idx

    def next(self) -> int:
        return self.goto(self.current_index + 1)

    def prev(self) -> int:
        return self.goto(self.current_index - 1)

    def palette(self) -> List[Dict[str, object]]:
        current = self.current_index
        return [
            {
                "index": idx,
                "question_id": q.id,
                "status": self.status_of(q.id).value,
                "is_current": idx == current,
            }
            for idx, q in enumerate(self.test.questions)
        ]
