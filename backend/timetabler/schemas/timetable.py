from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from timetabler.core.catalog import TIME_SLOTS, Day, is_known_slot
from timetabler.services.entries import ConflictDimension, TimetableEntry, normalize_room


def _validate_slot(value: str) -> str:
    slot = value.strip()
    if not is_known_slot(slot):
        raise ValueError(f"Invalid time slot; expected one of {', '.join(TIME_SLOTS)}")
    return slot


class TimetableEntryBase(BaseModel):
    day: Day
    slot: str
    class_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    room: str | None = Field(default=None, max_length=50)

    @field_validator("slot")
    @classmethod
    def validate_slot(cls, value: str) -> str:
        return _validate_slot(value)

    @field_validator("room")
    @classmethod
    def clean_room(cls, value: str | None) -> str | None:
        return normalize_room(value)

    def to_entry(self, scope_id: str) -> TimetableEntry:
        return TimetableEntry(
            scope_id=scope_id,
            day=self.day,
            slot=self.slot,
            class_id=self.class_id,
            subject_id=self.subject_id,
            teacher_id=self.teacher_id,
            room=self.room,
        )


class TimetableEntryCreate(TimetableEntryBase):
    pass


class TimetableEntryUpdate(BaseModel):
    day: Day | None = None
    slot: str | None = None
    class_id: str | None = Field(default=None, min_length=1, max_length=36)
    subject_id: str | None = Field(default=None, min_length=1, max_length=36)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    room: str | None = Field(default=None, max_length=50)

    @field_validator("slot")
    @classmethod
    def validate_slot(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _validate_slot(value)

    @field_validator("room")
    @classmethod
    def clean_room(cls, value: str | None) -> str | None:
        return normalize_room(value)

    def to_patch(self) -> dict:
        # Only room may be explicitly cleared; other nulls mean "leave as is".
        data = self.model_dump(exclude_unset=True)
        return {key: value for key, value in data.items() if value is not None or key == "room"}


class TimetableEntryOut(BaseModel):
    id: str
    scope_id: str
    day: Day
    slot: str
    class_id: str
    subject_id: str
    teacher_id: str
    room: str | None

    model_config = {"from_attributes": True}


class ConflictReportOut(BaseModel):
    dimension: ConflictDimension
    conflicting_entry_id: str | None
    message: str

    model_config = {"from_attributes": True}


class ConflictCheckRequest(TimetableEntryBase):
    exclude_id: str | None = None


class ConflictCheckResponse(BaseModel):
    ok: bool
    conflicts: list[ConflictReportOut]
    busy_teacher_ids: list[str] = Field(default_factory=list)


class SlotCatalogOut(BaseModel):
    days: list[Day]
    slots: list[str]


class TeacherSuggestionOut(BaseModel):
    subject_name: str
    teacher_id: str | None
    teacher_name: str | None = None
