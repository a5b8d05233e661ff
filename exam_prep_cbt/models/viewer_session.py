"""
models/viewer_session.py

브라우저 사용자(학생/관리자) 식별 정보.
전역 저장소를 직접 읽지 않고, 화면 생성 시 명시적으로 전달한다.
저장/복원은 api.session 의 load()/save() 경계에서만 일어난다.
"""

from typing import Optional

from pydantic import BaseModel, Field


class StudentData(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    email: str = ""
    phone: str = ""


class ViewerSession(BaseModel):
    student_data: Optional[StudentData] = None
    is_student_authenticated: bool = False
    is_admin_authenticated: bool = False

    @property
    def student_id(self) -> Optional[str]:
        if self.is_student_authenticated and self.student_data:
            return self.student_data.id
        return None
