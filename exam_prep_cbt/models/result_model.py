"""
models/result_model.py

채점 결과 모델. 세션당 한 번 생성되며 이후 변경 불가 (frozen).
서버 응답과 로컬 폴백 채점이 같은 모델로 표현되므로 == 비교로 동일성 확인 가능.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from exam_prep_cbt.models.question_model import Marks


class Result(BaseModel):
    total_questions: int = Field(0, ge=0, alias="totalQuestions")
    correct_answers: int = Field(0, ge=0, alias="correctAnswers")
    wrong_answers: int = Field(0, ge=0, alias="wrongAnswers")
    unanswered: int = Field(0, ge=0)
    total_marks: Marks = Field(0, alias="totalMarks")
    obtained_marks: Marks = Field(0, alias="obtainedMarks", description="0 미만으로 내려가지 않음")
    negative_marks_total: Marks = Field(0, alias="negativeMarksTotal")
    percentage: int = Field(0, ge=0, le=100)
    time_taken_seconds: Optional[int] = Field(
        None, ge=0, alias="timeTakenSeconds", description="실제 경과 시간 (벽시계 기준)"
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def from_wire(cls, payload: Any) -> "Result":
        """서버 응답(JSON) → Result. 서버는 timeTaken 필드명을 사용한다."""
        if isinstance(payload, dict) and "timeTakenSeconds" not in payload and "timeTaken" in payload:
            payload = dict(payload)
            payload["timeTakenSeconds"] = payload.pop("timeTaken")
        return cls.model_validate(payload)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
