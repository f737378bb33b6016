# portal_service/app/schemas.py

from pydantic import BaseModel


class SessionContext(BaseModel):
    user_id: int


class DeadlineEntry(BaseModel):
    course_id: int
    course_name: str | None = None
    assignment_name: str
    due_seconds: int


class ActiveCourse(BaseModel):
    id: int
    fullname: str
