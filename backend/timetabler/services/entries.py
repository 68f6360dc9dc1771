"""Typed value objects the scheduling engine works on.

Database rows and request bodies are converted into these once, at the
boundary; nothing past that point handles loose dicts.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from enum import Enum

from timetabler.core.catalog import Day

PATCHABLE_FIELDS = frozenset({"day", "slot", "class_id", "subject_id", "teacher_id", "room"})


def normalize_room(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


@dataclass(frozen=True)
class TimetableEntry:
    day: Day
    slot: str
    class_id: str
    subject_id: str
    teacher_id: str
    scope_id: str
    room: str | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "day", Day(self.day))
        object.__setattr__(self, "room", normalize_room(self.room))

    def merge(self, patch: Mapping[str, object]) -> TimetableEntry:
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch timetable entry field(s): {', '.join(sorted(unknown))}")
        return replace(self, **patch)

    def same_cell(self, other: TimetableEntry) -> bool:
        return self.scope_id == other.scope_id and self.day == other.day and self.slot == other.slot

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["day"] = self.day.value
        return payload


class ConflictDimension(str, Enum):
    teacher = "teacher"
    class_ = "class"
    room = "room"


@dataclass(frozen=True)
class ConflictReport:
    dimension: ConflictDimension
    conflicting_entry_id: str | None
    message: str

    def to_dict(self) -> dict:
        return {
            "dimension": self.dimension.value,
            "conflicting_entry_id": self.conflicting_entry_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class RosterTeacher:
    id: str
    name: str
    specialization: str = ""
