"""
services/answer_sheet.py

답안 / 표시(flag) 상태 변경.
응시 중(IN_PROGRESS)이 아니면 모든 변경을 거부한다 (SessionClosed).
"""

import logging
from typing import Dict

from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.session_state import TestSession
from exam_prep_cbt.services.errors import SessionClosed, ValidationFailure

logger = logging.getLogger(__name__)


class AnswerSheet:
    def __init__(self, test: MockTest, session: TestSession):
        self.test = test
        self.session = session

    def _check_open(self, question_id: str) -> None:
        if not self.session.is_open:
            raise SessionClosed(f"응시 중이 아닙니다 (phase={self.session.phase.value}).")
        if self.test.get_question(question_id) is None:
            raise ValidationFailure(f"시험에 없는 문항입니다: {question_id}")

    def select(self, question_id: str, option_key: str) -> None:
        """답 선택. 같은 문항의 기존 답은 덮어쓴다. 빈 값은 clear와 같다."""
        if not option_key:
            self.clear(question_id)
            return
        self._check_open(question_id)
        question = self.test.get_question(question_id)
        if option_key not in question.option_keys:
            raise ValidationFailure(f"문항 {question_id}에 없는 보기입니다: {option_key}")
        self.session.answers[question_id] = option_key

    def clear(self, question_id: str) -> None:
        """답 지우기. 답이 없으면 아무 일도 하지 않는다."""
        self._check_open(question_id)
        self.session.answers.pop(question_id, None)

    def toggle_flag(self, question_id: str) -> bool:
        """표시 토글. 토글 후 표시 여부를 반환."""
        self._check_open(question_id)
        flagged = self.session.flagged
        if question_id in flagged:
            flagged.discard(question_id)
            return False
        flagged.add(question_id)
        return True

    def is_answered(self, question_id: str) -> bool:
        return bool(self.session.answers.get(question_id))

    def is_flagged(self, question_id: str) -> bool:
        return question_id in self.session.flagged

    def progress(self) -> Dict[str, int]:
        answered = len(self.session.answers)
        return {
            "answered": answered,
            "remaining": len(self.test.questions) - answered,
            "flagged": len(self.session.flagged),
        }
