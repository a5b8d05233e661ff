"""
models/content_model.py

강의 카탈로그 모델 (강의, 강의 내 콘텐츠 항목, 열람 권한 판정 입력).
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class ContentKind(str, Enum):
    VIDEO = "videos"
    NOTE = "notes"
    TEST = "tests"
    LIVE_CLASS = "live-classes"


def _normalize_id(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    data = dict(data)
    if "id" not in data and "_id" in data:
        data["id"] = data.pop("_id")
    if data.get("id") is not None:
        data["id"] = str(data["id"])
    return data


class Course(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = ""
    price: float = Field(0, ge=0)
    mrp: float = Field(0, ge=0)
    type: Optional[str] = Field(None, description="live / recorded / test-series")

    @model_validator(mode="before")
    @classmethod
    def _from_wire_payload(cls, data: Any) -> Any:
        data = _normalize_id(data)
        if isinstance(data, dict) and not data.get("title") and data.get("name"):
            data["title"] = data["name"]
        return data

    @property
    def is_free(self) -> bool:
        return self.price == 0


class ContentItem(BaseModel):
    """
    강의에 속한 콘텐츠 한 건 (영상 / 노트 / 모의고사 / 라이브 수업).

    위치(position)는 저장하지 않는다. 목록 정렬 순서가 바뀔 때마다
    services.entitlement.annotate_listing 에서 다시 계산한다.
    """

    id: str = Field(..., min_length=1)
    title: str = ""
    kind: ContentKind = ContentKind.VIDEO
    is_free: bool = Field(False, alias="isFree")
    order: int = Field(0, description="관리자가 지정한 정렬 순서")
    status: str = Field("active")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _from_wire_payload(cls, data: Any) -> Any:
        data = _normalize_id(data)
        if isinstance(data, dict):
            if not data.get("title") and data.get("name"):
                data["title"] = data["name"]
            if data.get("order") is None:
                data.pop("order", None)
            if data.get("status") is None:
                data.pop("status", None)
            if data.get("isFree") is None:
                data.pop("isFree", None)
        return data


class ItemFlags(BaseModel):
    is_free: bool = False
    position_index: int = Field(0, ge=0, description="부모 목록 내 0-based 순위")


class EntitlementContext(BaseModel):
    """열람 권한 판정 입력. 저장하지 않고 렌더링 때마다 새로 만든다."""

    viewer_enrolled: bool = False
    item: ItemFlags = Field(default_factory=ItemFlags)
