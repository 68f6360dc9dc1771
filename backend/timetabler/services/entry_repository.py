from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from timetabler.core.exceptions import AppError, ConflictError, NotFoundError, PersistenceError
from timetabler.models.timetable_entry import (
    CLASS_SLOT_CONSTRAINT,
    ROOM_SLOT_INDEX,
    TEACHER_SLOT_CONSTRAINT,
    TimetableEntryRecord,
)
from timetabler.services.conflict_service import find_conflicts
from timetabler.services.entries import ConflictDimension, ConflictReport, TimetableEntry

logger = logging.getLogger(__name__)

# Postgres names the violated constraint; SQLite lists the constrained columns.
_VIOLATION_MARKERS: tuple[tuple[ConflictDimension, str, str], ...] = (
    (ConflictDimension.teacher, TEACHER_SLOT_CONSTRAINT, "timetable_entries.teacher_id"),
    (ConflictDimension.class_, CLASS_SLOT_CONSTRAINT, "timetable_entries.class_id"),
    (ConflictDimension.room, ROOM_SLOT_INDEX, "timetable_entries.room_number"),
)
_SQLITE_UNIQUE_PREFIX = "UNIQUE constraint failed"

_STORAGE_MESSAGES = {
    ConflictDimension.teacher: "Teacher is already scheduled during this time",
    ConflictDimension.class_: "Class already has a scheduled period during this time",
    ConflictDimension.room: "Room is already booked during this time",
}


class EntryRepository(Protocol):
    scope_id: str

    def load_all(self) -> list[TimetableEntry]: ...

    def insert(self, entry: TimetableEntry) -> TimetableEntry: ...

    def update(self, entry: TimetableEntry) -> TimetableEntry: ...

    def delete(self, entry_id: str) -> bool: ...


def to_entry(record: TimetableEntryRecord) -> TimetableEntry:
    return TimetableEntry(
        id=record.id,
        scope_id=record.school_id,
        day=record.day_of_week,
        slot=record.time_slot,
        class_id=record.class_id,
        subject_id=record.subject_id,
        teacher_id=record.teacher_id,
        room=record.room_number,
    )


def violated_dimension(error_message: str) -> ConflictDimension | None:
    for dimension, constraint_name, _ in _VIOLATION_MARKERS:
        if constraint_name in error_message:
            return dimension
    if _SQLITE_UNIQUE_PREFIX in error_message:
        for dimension, _, column in _VIOLATION_MARKERS:
            if column in error_message:
                return dimension
    return None


class SqlAlchemyEntryRepository:
    """Timetable rows of one school, backed by the ``timetable_entries`` table.

    Every mutation commits on its own. The table's unique constraints are the
    authoritative guard against double booking: when a commit trips one, the
    transaction is rolled back and the rejection comes back as the same
    ``ConflictError`` the in-memory check raises.
    """

    def __init__(self, db: Session, scope_id: str) -> None:
        self._db = db
        self.scope_id = scope_id

    def load_all(self) -> list[TimetableEntry]:
        query = (
            select(TimetableEntryRecord)
            .where(TimetableEntryRecord.school_id == self.scope_id)
            .order_by(TimetableEntryRecord.created_at, TimetableEntryRecord.id)
        )
        return [to_entry(record) for record in self._db.execute(query).scalars()]

    def insert(self, entry: TimetableEntry) -> TimetableEntry:
        record = TimetableEntryRecord(
            id=entry.id,
            school_id=self.scope_id,
            day_of_week=entry.day,
            time_slot=entry.slot,
            class_id=entry.class_id,
            subject_id=entry.subject_id,
            teacher_id=entry.teacher_id,
            room_number=entry.room,
        )
        self._db.add(record)
        self._commit(entry)
        self._db.refresh(record)
        return to_entry(record)

    def update(self, entry: TimetableEntry) -> TimetableEntry:
        record = self._get_record(entry.id)
        if record is None:
            raise NotFoundError("Timetable entry", entry.id)
        record.day_of_week = entry.day
        record.time_slot = entry.slot
        record.class_id = entry.class_id
        record.subject_id = entry.subject_id
        record.teacher_id = entry.teacher_id
        record.room_number = entry.room
        self._commit(entry)
        self._db.refresh(record)
        return to_entry(record)

    def delete(self, entry_id: str) -> bool:
        record = self._get_record(entry_id)
        if record is None:
            return False
        self._db.delete(record)
        self._commit(None)
        return True

    def _get_record(self, entry_id: str | None) -> TimetableEntryRecord | None:
        if entry_id is None:
            return None
        record = self._db.get(TimetableEntryRecord, entry_id)
        if record is None or record.school_id != self.scope_id:
            return None
        return record

    def _commit(self, candidate: TimetableEntry | None) -> None:
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            if candidate is None:
                raise PersistenceError("Timetable storage rejected the change") from exc
            raise self._translate_integrity_error(candidate, exc) from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.error("Timetable storage failure for school %s", self.scope_id, exc_info=True)
            raise PersistenceError("Timetable storage is unavailable") from exc

    def _translate_integrity_error(self, candidate: TimetableEntry, exc: IntegrityError) -> AppError:
        dimension = violated_dimension(str(exc.orig))
        if dimension is None:
            logger.error("Unexpected integrity error for timetable entry %s: %s", candidate.id, exc.orig)
            return PersistenceError("Timetable storage rejected the entry", details={"reason": str(exc.orig)})

        # The rolled back session now sees what the other writer committed.
        reports = find_conflicts(candidate, self.load_all(), exclude_id=candidate.id)
        if not reports:
            reports = [ConflictReport(dimension, None, _STORAGE_MESSAGES[dimension])]
        logger.warning(
            "Storage rejected timetable entry %s for school %s on %s dimension",
            candidate.id,
            self.scope_id,
            dimension.value,
        )
        return ConflictError(reports)


class InMemoryEntryRepository:
    """Dict-backed repository enforcing the same uniqueness rules as the table."""

    def __init__(self, scope_id: str, entries: Iterable[TimetableEntry] = ()) -> None:
        self.scope_id = scope_id
        self._rows: dict[str, TimetableEntry] = {}
        for entry in entries:
            self.insert(entry)

    def load_all(self) -> list[TimetableEntry]:
        return list(self._rows.values())

    def insert(self, entry: TimetableEntry) -> TimetableEntry:
        if entry.id is None:
            raise ValueError("Entries must carry an id before they are stored")
        self._enforce_uniqueness(entry)
        self._rows[entry.id] = entry
        return entry

    def update(self, entry: TimetableEntry) -> TimetableEntry:
        if entry.id not in self._rows:
            raise NotFoundError("Timetable entry", str(entry.id))
        self._enforce_uniqueness(entry)
        self._rows[entry.id] = entry
        return entry

    def delete(self, entry_id: str) -> bool:
        return self._rows.pop(entry_id, None) is not None

    def _enforce_uniqueness(self, entry: TimetableEntry) -> None:
        reports = find_conflicts(entry, self._rows.values(), exclude_id=entry.id)
        if reports:
            raise ConflictError(reports)
