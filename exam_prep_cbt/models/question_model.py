from typing import Any, List, Optional, Union

from pydantic import (
    BaseModel,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    field_validator,
    model_validator,
)

from config import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_MARKS_PER_QUESTION,
    DEFAULT_NEGATIVE_MARKING,
)

# 정수 배점은 정수로 유지 (4, 8 ...), 소수 감점(0.25 등)도 허용
Marks = Union[NonNegativeInt, NonNegativeFloat]

_LEGACY_OPTION_KEYS = ("A", "B", "C", "D")


class OptionItem(BaseModel):
    """보기 하나. key는 'A', 'B' 같은 선택 기호."""

    key: str = Field(..., min_length=1, description="보기 기호 (예: A, B, C, D)")
    value: str = Field("", description="보기 텍스트")
    image_ref: Optional[str] = Field(None, alias="imageRef", description="보기 이미지 URL")

    model_config = {"frozen": True, "populate_by_name": True}


class Question(BaseModel):
    """
    모의고사 문항 모델.
    시험 세션이 시작된 뒤에는 변경하지 않는다 (frozen).
    marks / negative_marks 가 비어 있으면 MockTest 로딩 시 시험 기본값으로 채워진다.
    """

    id: str = Field(..., min_length=1, description="문항 ID (고유 식별자)")
    text: str = Field("", description="문제 본문")
    image_ref: Optional[str] = Field(None, alias="imageRef", description="문제 이미지 URL")
    options: List[OptionItem] = Field(..., description="보기 리스트 (순서 유지)")
    correct_option_key: str = Field("", alias="correctOptionKey", description="정답 보기 기호")
    marks: Optional[Marks] = Field(None, description="정답 배점")
    negative_marks: Optional[Marks] = Field(
        None, alias="negativeMarks", description="오답 감점"
    )
    explanation: str = Field("", description="해설")

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _from_wire_payload(cls, data: Any) -> Any:
        """
        백엔드 문서 형식 보정.
        - question / correctAnswer / questionImage 필드명
        - optionA..optionD (+ optionXImage) 평면 필드 → options 리스트
        - 숫자 id → 문자열
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "id" not in data and "_id" in data:
            data["id"] = data.pop("_id")
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        if "text" not in data and "question" in data:
            data["text"] = data.pop("question") or ""
        if "correctOptionKey" not in data and "correctAnswer" in data:
            data["correctOptionKey"] = data.pop("correctAnswer") or ""
        if "imageRef" not in data and data.get("questionImage"):
            data["imageRef"] = data.pop("questionImage")

        if "options" not in data:
            options = []
            for key in _LEGACY_OPTION_KEYS:
                value = data.get(f"option{key}")
                image = data.get(f"option{key}Image")
                # 텍스트도 이미지도 없는 보기는 렌더링하지 않는다
                if not value and not image:
                    continue
                options.append({"key": key, "value": value or "", "imageRef": image or None})
            data["options"] = options

        # 백엔드는 null/0 을 "미지정"으로 보낸다
        for key in ("marks", "negativeMarks"):
            if key in data and not data[key]:
                data.pop(key)
        if data.get("explanation") is None:
            data.pop("explanation", None)
        return data

    @field_validator("options")
    @classmethod
    def validate_options_length(cls, v: List[OptionItem]) -> List[OptionItem]:
        """
        검증 로직 1: 보기는 최소 2개 이상, 기호는 중복 불가.
        """
        if len(v) < 2:
            raise ValueError("보기(options)는 최소 2개 이상의 항목이 필요합니다.")
        keys = [o.key for o in v]
        if len(set(keys)) != len(keys):
            raise ValueError(f"보기 기호가 중복되었습니다: {keys}")
        return v

    @model_validator(mode="after")
    def validate_answer_in_options(self) -> "Question":
        """
        검증 로직 2: 정답 기호가 있으면 반드시 보기 기호 중 하나여야 한다.
        """
        if self.correct_option_key and self.correct_option_key not in self.option_keys:
            raise ValueError(
                f"정답('{self.correct_option_key}')이 보기 기호({self.option_keys})에 존재하지 않습니다."
            )
        return self

    @property
    def option_keys(self) -> List[str]:
        return [o.key for o in self.options]


class MockTest(BaseModel):
    """
    모의고사 문서. 콘텐츠 관리 측에서 생성되며 클라이언트에서는 읽기 전용.

    로딩 시점에 문항별 배점/감점 기본값을 채운다:
      - marks          ← marks_per_question (기본 4)
      - negative_marks ← negative_marking   (기본 0)
    """

    id: str = Field(..., min_length=1, description="시험 ID")
    title: str = Field("", description="시험 제목")
    duration_minutes: float = Field(
        DEFAULT_DURATION_MINUTES, gt=0, alias="durationMinutes", description="제한 시간 (분)"
    )
    negative_marking: Marks = Field(
        DEFAULT_NEGATIVE_MARKING, alias="negativeMarking", description="기본 오답 감점"
    )
    marks_per_question: Marks = Field(
        DEFAULT_MARKS_PER_QUESTION, alias="marksPerQuestion", description="기본 배점"
    )
    questions: List[Question] = Field(default_factory=list, description="문항 리스트 (순서 유지)")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _from_wire_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "id" not in data and "_id" in data:
            data["id"] = data.pop("_id")
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        if not data.get("title") and data.get("name"):
            data["title"] = data.pop("name")
        if "durationMinutes" not in data and "duration" in data:
            data["durationMinutes"] = data.pop("duration")
        for key in ("durationMinutes", "negativeMarking", "marksPerQuestion", "questions"):
            if key in data and not data[key]:
                data.pop(key)
        return data

    @model_validator(mode="after")
    def _resolve_question_marks(self) -> "MockTest":
        ids = [q.id for q in self.questions]
        if len(set(ids)) != len(ids):
            raise ValueError("문항 ID가 중복되었습니다.")

        resolved = []
        for q in self.questions:
            update = {}
            if q.marks is None:
                update["marks"] = self.marks_per_question
            if q.negative_marks is None:
                update["negative_marks"] = self.negative_marking
            resolved.append(q.model_copy(update=update) if update else q)
        self.questions = resolved
        return self

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    @property
    def duration_seconds(self) -> int:
        return int(self.duration_minutes * 60)

    def get_question(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None
