"""
main.py — 모의고사 응시 클라이언트 진입점

로컬에서 FastAPI 서버를 띄우고 브라우저(앱 모드)로 연다.
채점/콘텐츠는 BACKEND_URL 의 REST 백엔드를 사용한다.
"""

import os
import socket
import subprocess
import sys
import time
import threading
import logging
import webbrowser
from typing import List, Optional

import httpx

# ── 패키지 경로 설정 (반드시 최상단) ──────────────────────────────────────────
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import BACKEND_URL, BASE_DIR, DEFAULT_HOST, DEFAULT_PORT, LOG_FILE

logger = logging.getLogger(__name__)

# 앱 모드(--app)를 지원하는 브라우저. 없으면 기본 브라우저 탭으로 연다.
APP_MODE_BROWSERS = (
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
    r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe",
    "/usr/bin/google-chrome",
    "/usr/bin/chromium",
)


# ── 로깅 설정 ────────────────────────────────────────────────────────────────
class DummyStream:
    def write(self, data): pass
    def flush(self): pass
    def isatty(self): return False
    def close(self): pass


def _configure_logging(log_file: str = LOG_FILE) -> None:
    # 콘솔 없는 실행(pythonw, 패키징 exe)에서는 stdout/stderr 가 None
    if sys.stdout is None: sys.stdout = DummyStream()
    if sys.stderr is None: sys.stderr = DummyStream()

    fmt = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    try:
        handlers = [logging.FileHandler(log_file, encoding='utf-8'), logging.StreamHandler(sys.stdout)]
    except OSError:
        # 로그 파일 점유/권한 없음 → 콘솔 출력만 사용
        handlers = [logging.StreamHandler(sys.stdout)]
    logging.basicConfig(level=logging.INFO, format=fmt, handlers=handlers)


# ── 서버 및 네트워크 유틸 ───────────────────────────────────────────────────

def _pick_port(host: str = DEFAULT_HOST, preferred: int = DEFAULT_PORT) -> int:
    """preferred 포트가 사용 중이면 OS가 주는 빈 포트를 고른다."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, preferred))
            return preferred
        except OSError:
            pass
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        port = s.getsockname()[1]
    logger.info(f"포트 {preferred} 사용 중 → {port} 사용")
    return port


def _wait_for_server(port: int, host: str = DEFAULT_HOST, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((host, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False


def _check_backend(url: str = BACKEND_URL, transport: Optional[httpx.BaseTransport] = None) -> bool:
    """
    백엔드 연결 확인. 실패해도 실행은 계속한다 (제출 시 로컬 채점으로 대체됨).
    응답 상태 코드와 관계없이 연결만 되면 True.
    """
    try:
        with httpx.Client(timeout=3.0, transport=transport) as client:
            client.get(url)
    except httpx.HTTPError as e:
        logger.warning(f"백엔드에 연결할 수 없습니다 ({url}): {e}")
        return False
    logger.info(f"백엔드 연결 확인: {url}")
    return True


def _browser_command(url: str, candidates=APP_MODE_BROWSERS) -> Optional[List[str]]:
    """앱 모드 실행 명령. 설치된 브라우저가 없으면 None."""
    for path in candidates:
        if os.path.exists(path):
            return [path, f"--app={url}", "--no-first-run", "--window-size=1280,800"]
    return None


def _open_browser(url: str) -> None:
    command = _browser_command(url)
    if command is None:
        webbrowser.open(url)
        return
    logger.info(f"브라우저 실행 시도: {command[0]}")
    subprocess.Popen(command)


def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Uvicorn 서버 시작 - Port: {port}")
        uvicorn.run(create_app(), host=DEFAULT_HOST, port=port, log_level="warning")
    except Exception:
        logger.exception("서버 오류 발생")


# ── 메인 실행 ────────────────────────────────────────────────────────────────

def main() -> int:
    _configure_logging()
    logger.info("=== Exam Prep CBT Client Started ===")
    os.chdir(BASE_DIR)
    _check_backend()

    port = _pick_port()
    server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
    server_thread.start()

    if not _wait_for_server(port):
        logger.error("서버 시작 제한 시간을 초과했습니다. 이미 실행 중인 프로세스가 있는지 확인해 보세요.")
        return 1

    logger.info("서버 준비 완료. 브라우저를 엽니다.")
    _open_browser(f"http://{DEFAULT_HOST}:{port}")
    try:
        while server_thread.is_alive():
            time.sleep(10)
    except KeyboardInterrupt:
        logger.info("사용자에 의해 종료되었습니다.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
