"""
services/poller.py

주기적 새로고침(채팅 메시지, 채팅 목록, 라이브 수업) 태스크.
start_polling()이 돌려준 PollHandle은 만든 화면이 소유하고, 화면 정리 시 cancel한다.
전역 타이머 레지스트리는 두지 않는다.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from exam_prep_cbt.services.errors import BackendError

logger = logging.getLogger(__name__)


class PollHandle:
    def __init__(self, name: str):
        self.name = name
        self.runs = 0
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug(f"폴링 중지: {self.name}")


def start_polling(
    fetch: Callable[[], Awaitable[None]],
    interval: float,
    name: str,
    immediate: bool = True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollHandle:
    """
    fetch를 interval 초마다 호출한다. 한 번 실패해도 다음 주기에 다시 시도한다.

    Args:
        fetch:     새로고침 코루틴 함수.
        interval:  주기 (초).
        name:      로그용 이름.
        immediate: True면 첫 호출을 기다리지 않고 바로 실행.
    """
    handle = PollHandle(name)

    async def _loop() -> None:
        if not immediate:
            await sleep(interval)
        while not handle._cancelled:
            try:
                await fetch()
            except BackendError as e:
                logger.warning(f"폴링 실패 ({name}): {e}")
            except Exception as e:
                logger.error(f"폴링 중 예상치 못한 오류 ({name}): {type(e).__name__}: {e}")
            handle.runs += 1
            await sleep(interval)

    handle._task = asyncio.get_running_loop().create_task(_loop(), name=f"poll:{name}")
    logger.debug(f"폴링 시작: {name} ({interval}s)")
    return handle
