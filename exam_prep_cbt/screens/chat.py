"""
screens/chat.py

상담 채팅 화면 (폴링 방식).
  - ChatScreen      : 학생용. 자기 채팅방 메시지를 3초마다 새로고침
  - AdminChatScreen : 관리자용. 채팅방 목록 5초, 선택한 방 메시지 3초마다 새로고침
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config import CHAT_LIST_POLL_SECONDS, CHAT_MESSAGE_POLL_SECONDS
from exam_prep_cbt.models.chat_model import ChatMessage, ChatThread, SenderType
from exam_prep_cbt.models.viewer_session import ViewerSession
from exam_prep_cbt.services.backend_client import BackendClient
from exam_prep_cbt.services.errors import SessionClosed, ValidationFailure
from exam_prep_cbt.services.poller import PollHandle, start_polling

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

ADMIN_SENDER_ID = "admin"
ADMIN_SENDER_NAME = "Admin"


def _message_to_dict(m: ChatMessage) -> Dict[str, Any]:
    return {
        "id": m.id,
        "senderName": m.sender_name,
        "senderType": m.sender_type.value,
        "message": m.message,
        "createdAt": m.created_at,
    }


def _clean_text(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationFailure("빈 메시지는 보낼 수 없습니다.")
    return text


class ChatScreen:
    def __init__(
        self,
        backend: BackendClient,
        viewer: ViewerSession,
        interval: float = CHAT_MESSAGE_POLL_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.backend = backend
        self.viewer = viewer
        self.thread: Optional[ChatThread] = None
        self.messages: List[ChatMessage] = []
        self._interval = interval
        self._sleep = sleep
        self._poller: Optional[PollHandle] = None

    async def open(self) -> ChatThread:
        student = self.viewer.student_data
        if self.viewer.student_id is None or student is None:
            raise ValidationFailure("상담 채팅은 학생 로그인 후에 가능합니다.")
        self.thread = await self.backend.start_chat(student.id, student.name)
        await self.refresh()
        self._poller = start_polling(
            self.refresh, self._interval, name=f"chat:{self.thread.id}",
            immediate=False, sleep=self._sleep,
        )
        return self.thread

    async def refresh(self) -> None:
        messages = await self.backend.list_messages(self.thread.id)
        has_new_reply = any(
            m.sender_type == SenderType.ADMIN for m in messages[len(self.messages):]
        )
        self.messages = messages
        if has_new_reply:
            await self.backend.mark_read(self.thread.id, SenderType.STUDENT)

    async def send(self, text: str) -> None:
        if self.thread is None:
            raise SessionClosed("채팅방이 열려 있지 않습니다.")
        student = self.viewer.student_data
        await self.backend.send_message(
            self.thread.id, student.id, student.name, SenderType.STUDENT, _clean_text(text)
        )
        await self.refresh()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "chatId": self.thread.id if self.thread else None,
            "messages": [_message_to_dict(m) for m in self.messages],
        }

    def dispose(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None


class AdminChatScreen:
    def __init__(
        self,
        backend: BackendClient,
        list_interval: float = CHAT_LIST_POLL_SECONDS,
        message_interval: float = CHAT_MESSAGE_POLL_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.backend = backend
        self.threads: List[ChatThread] = []
        self.selected: Optional[ChatThread] = None
        self.messages: List[ChatMessage] = []
        self._list_interval = list_interval
        self._message_interval = message_interval
        self._sleep = sleep
        self._list_poller: Optional[PollHandle] = None
        self._message_poller: Optional[PollHandle] = None

    async def open(self) -> List[ChatThread]:
        await self.refresh_threads()
        self._list_poller = start_polling(
            self.refresh_threads, self._list_interval, name="chat-list",
            immediate=False, sleep=self._sleep,
        )
        return self.threads

    async def refresh_threads(self) -> None:
        self.threads = await self.backend.list_chats()

    async def select(self, chat_id: str) -> None:
        """채팅방 선택. 이전 방의 메시지 폴링은 멈추고 새 방으로 바꾼다."""
        thread = next((t for t in self.threads if t.id == chat_id), None)
        if thread is None:
            raise ValidationFailure(f"채팅방이 없습니다: {chat_id}")
        if self._message_poller is not None:
            self._message_poller.cancel()
        self.selected = thread
        self.messages = []
        await self.refresh_messages()
        await self.backend.mark_read(chat_id, SenderType.ADMIN)
        self._message_poller = start_polling(
            self.refresh_messages, self._message_interval, name=f"chat:{chat_id}",
            immediate=False, sleep=self._sleep,
        )

    async def refresh_messages(self) -> None:
        if self.selected is None:
            return
        self.messages = await self.backend.list_messages(self.selected.id)

    async def reply(self, text: str) -> None:
        if self.selected is None:
            raise SessionClosed("선택된 채팅방이 없습니다.")
        await self.backend.send_message(
            self.selected.id, ADMIN_SENDER_ID, ADMIN_SENDER_NAME, SenderType.ADMIN, _clean_text(text)
        )
        await self.refresh_messages()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "threads": [
                {
                    "id": t.id,
                    "studentName": t.student_name,
                    "lastMessage": t.last_message,
                    "unread": t.unread_admin,
                }
                for t in self.threads
            ],
            "selected": self.selected.id if self.selected else None,
            "messages": [_message_to_dict(m) for m in self.messages],
        }

    def dispose(self) -> None:
        for poller in (self._list_poller, self._message_poller):
            if poller is not None:
                poller.cancel()
        self._list_poller = None
        self._message_poller = None
