import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 백엔드(REST) 설정
BACKEND_URL = os.getenv("BACKEND_URL", "http://127.0.0.1:5000").rstrip("/")
BACKEND_TIMEOUT = float(os.getenv("BACKEND_TIMEOUT", "15.0"))

# 세션 설정
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))   # 1시간
SESSION_CLEANUP_INTERVAL = 300                         # 5분

# 폴링 주기 (초)
CHAT_MESSAGE_POLL_SECONDS = float(os.getenv("CHAT_MESSAGE_POLL_SECONDS", "3"))
CHAT_LIST_POLL_SECONDS = float(os.getenv("CHAT_LIST_POLL_SECONDS", "5"))
LIVE_CLASS_POLL_SECONDS = float(os.getenv("LIVE_CLASS_POLL_SECONDS", "30"))

# 시험 기본값 (백엔드 문서에 값이 없을 때)
DEFAULT_DURATION_MINUTES = 60
DEFAULT_MARKS_PER_QUESTION = 4
DEFAULT_NEGATIVE_MARKING = 0

# 타이머 경고 구간 (남은 시간 / 전체 시간)
URGENCY_CRITICAL_RATIO = 0.10
URGENCY_WARNING_RATIO = 0.25
