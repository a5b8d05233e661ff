from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class SenderType(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


def _normalize_ids(data: Any, *keys: str) -> Any:
    if not isinstance(data, dict):
        return data
    data = dict(data)
    if "id" not in data and "_id" in data:
        data["id"] = data.pop("_id")
    for key in ("id",) + keys:
        if data.get(key) is not None:
            data[key] = str(data[key])
    return data


class ChatThread(BaseModel):
    """학생 1명과 관리자 간 상담 채팅방."""

    id: str
    student_id: str = Field("", alias="studentId")
    student_name: str = Field("", alias="studentName")
    last_message: str = Field("", alias="lastMessage")
    unread_admin: int = Field(0, alias="unreadAdmin")
    unread_student: int = Field(0, alias="unreadStudent")
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _from_wire_payload(cls, data: Any) -> Any:
        return _normalize_ids(data, "studentId")


class ChatMessage(BaseModel):
    id: str
    chat_id: str = Field("", alias="chatId")
    sender_id: str = Field("", alias="senderId")
    sender_name: str = Field("", alias="senderName")
    sender_type: SenderType = Field(SenderType.STUDENT, alias="senderType")
    message: str = ""
    created_at: Optional[str] = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _from_wire_payload(cls, data: Any) -> Any:
        return _normalize_ids(data, "chatId", "senderId")
