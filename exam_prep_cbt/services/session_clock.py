"""
services/session_clock.py

시험 카운트다운 타이머.
  - 1초마다 1씩 감소, 0에서 멈추고 on_expire를 정확히 한 번 호출
  - cancel() 이후의 늦은 tick / expire는 아무 일도 하지 않는다
  - 남은 시간 표시용 문자열과 경고 단계 계산 포함
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from config import URGENCY_CRITICAL_RATIO, URGENCY_WARNING_RATIO

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]


class Urgency(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


def urgency_level(remaining_seconds: int, total_seconds: int) -> Urgency:
    """
    남은 시간 비율로 타이머 색상 단계를 정한다 (표시 전용).
      ≤ 10% → critical, ≤ 25% → warning, 그 외 normal
    """
    if total_seconds <= 0:
        return Urgency.CRITICAL
    ratio = remaining_seconds / total_seconds
    if ratio <= URGENCY_CRITICAL_RATIO:
        return Urgency.CRITICAL
    if ratio <= URGENCY_WARNING_RATIO:
        return Urgency.WARNING
    return Urgency.NORMAL


def format_time(seconds: int) -> str:
    """1시간 이상이면 H:MM:SS, 미만이면 MM:SS."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class SessionClock:
    """
    단일 카운트다운. 화면(TestTakingScreen)이 소유하고 화면이 정리될 때 cancel한다.

    Args:
        sleep:    대기 함수 (테스트에서 가짜 sleep 주입용).
        interval: tick 간격 (초).
    """

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        interval: float = 1.0,
    ):
        self._sleep = sleep
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._remaining = 0
        self._running = False
        self._expired = False
        self._on_tick: TickCallback = lambda remaining: None
        self._on_expire: ExpireCallback = lambda: None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._running

    @property
    def expired(self) -> bool:
        return self._expired

    def start(
        self,
        duration_seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
        autorun: bool = True,
    ) -> None:
        """
        카운트다운 시작. autorun=False면 백그라운드 태스크 없이 tick()을 직접 호출해 진행한다.
        """
        if self._running or self._expired:
            raise RuntimeError("타이머는 세션당 한 번만 시작할 수 있습니다.")

        self._remaining = max(0, int(duration_seconds))
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._running = True

        if self._remaining == 0:
            self._expire()
            return

        if autorun:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self._running:
            await self._sleep(self._interval)
            self.tick()

    def tick(self) -> int:
        """1초 경과 처리. 멈춘 타이머에서는 아무 일도 하지 않는다."""
        if not self._running:
            return self._remaining

        self._remaining = max(0, self._remaining - 1)
        self._on_tick(self._remaining)
        if self._remaining == 0:
            self._expire()
        return self._remaining

    def _expire(self) -> None:
        if self._expired:
            return
        self._expired = True
        self._running = False
        logger.info("타이머 만료, 자동 제출 시작")
        self._on_expire()

    def cancel(self) -> None:
        """즉시 정지. 여러 번 호출해도 안전."""
        self._running = False
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
