"""
services/exam_service.py

시험 채점 및 결과 분석 비즈니스 로직.
순수 Python 함수로 구성. UI 코드, 전역 상태 변경 없음.

score_answers() 하나만 채점 규칙을 가진다.
서버 채점 경로(api 의 /api/grade)와 제출 실패 시 로컬 폴백 경로가
모두 이 함수를 호출하므로 두 결과는 항상 동일하다.
"""

import math
from typing import Dict, List, Optional

from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.result_model import Result


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_percentage(obtained_marks: float, total_marks: float) -> int:
    """
    득점률(%)을 정수로 반환한다. total_marks가 0이면 0.
    """
    if total_marks <= 0:
        return 0
    return _round_half_up(obtained_marks / total_marks * 100)


def score_answers(
    test: MockTest,
    answers: Dict[str, str],
    time_taken_seconds: Optional[int] = None,
) -> Result:
    """
    사용자 답안을 채점하여 Result를 반환한다.

    문항별 판정:
      - 미응답(키 없음 또는 빈 문자열): 0점, unanswered 증가
      - 정답: correct_answers 증가, 배점(marks) 가산
      - 오답: wrong_answers 증가, 감점(negative_marks) 차감 및 누적

    Args:
        test:               채점 대상 시험 (문항 배점/감점 기본값이 이미 채워진 상태).
        answers:            사용자 답안지. {question.id: 선택한 보기 기호}
        time_taken_seconds: 소요 시간 (초). 결과에 그대로 기록된다.

    Returns:
        Result. obtained_marks는 0 미만으로 내려가지 않는다.
        문항이 없는 시험이면 모든 값이 0인 Result.
    """
    correct = 0
    wrong = 0
    unanswered = 0
    total_marks = 0
    obtained = 0
    negative_total = 0

    for q in test.questions:
        marks = q.marks or 0
        neg = q.negative_marks or 0
        total_marks += marks

        selected = answers.get(q.id)
        if not selected:
            unanswered += 1
        elif selected == q.correct_option_key:
            correct += 1
            obtained += marks
        else:
            wrong += 1
            negative_total += neg
            obtained -= neg

    obtained = max(0, obtained)

    return Result(
        total_questions=len(test.questions),
        correct_answers=correct,
        wrong_answers=wrong,
        unanswered=unanswered,
        total_marks=total_marks,
        obtained_marks=obtained,
        negative_marks_total=negative_total,
        percentage=calculate_percentage(obtained, total_marks),
        time_taken_seconds=time_taken_seconds,
    )


def build_review(test: MockTest, answers: Dict[str, str]) -> List[Dict[str, object]]:
    """
    답안 검토(오답 노트) 데이터를 반환한다. 원본 문항 순서 유지.

    Returns:
        [{"index": int, "question_id": str, "text": str, "selected": str | None,
          "correct": str, "is_correct": bool, "explanation": str}, ...]
    """
    review = []
    for idx, q in enumerate(test.questions):
        selected = answers.get(q.id) or None
        review.append({
            "index": idx,
            "question_id": q.id,
            "text": q.text,
            "selected": selected,
            "correct": q.correct_option_key,
            "is_correct": selected is not None and selected == q.correct_option_key,
            "explanation": q.explanation,
        })
    return review


def performance_band(percentage: int) -> str:
    """
    결과 화면 색상 구간. 70% 이상 good, 40% 이상 average, 그 외 poor.
    """
    if percentage >= 70:
        return "good"
    if percentage >= 40:
        return "average"
    return "poor"
