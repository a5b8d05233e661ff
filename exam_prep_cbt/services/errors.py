"""
services/errors.py

클라이언트 오류 분류.
  - NetworkFailure    : 전송 실패 또는 404 외의 비정상 상태 코드 → 폴백 또는 재시도 안내
  - NotFoundFailure   : 존재하지 않는 강의/시험 → 화면 종료 (뒤로 가기만 제공)
  - ValidationFailure : 응답/입력이 타입 모델로 해석되지 않음
  - SessionClosed     : 응시 상태가 아닐 때 답안/표시/이동 변경 시도
"""


class BackendError(Exception):
    """백엔드 연동 오류의 공통 부모."""


class NetworkFailure(BackendError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundFailure(BackendError):
    pass


class ValidationFailure(BackendError, ValueError):
    pass


class SessionClosed(RuntimeError):
    pass
