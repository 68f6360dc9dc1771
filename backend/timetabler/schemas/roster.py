from datetime import datetime

from pydantic import BaseModel, Field


class TeacherCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    subject_specialization: str | None = Field(default=None, max_length=200)
    is_active: bool = True


class TeacherOut(TeacherCreate):
    id: str
    school_id: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)


class SubjectOut(SubjectCreate):
    id: str
    school_id: str

    model_config = {"from_attributes": True}
