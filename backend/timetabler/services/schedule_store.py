from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
import logging
import uuid

from timetabler.core.catalog import Day, cell_sort_key
from timetabler.core.exceptions import ConflictError, NotFoundError
from timetabler.services.conflict_service import audit_entries, find_conflicts
from timetabler.services.entries import ConflictReport, TimetableEntry
from timetabler.services.entry_repository import EntryRepository

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, TimetableEntry], None]


class ScheduleStore:
    """Conflict-checked view over one school's timetable entries.

    The store keeps a snapshot of the school's entries and runs every create
    and update through ``find_conflicts`` before handing it to the
    repository. That check gives immediate feedback but can be stale; the
    repository's own constraints have the final word, and their rejections
    arrive as ``ConflictError`` too.
    """

    def __init__(self, repository: EntryRepository, *, on_change: ChangeListener | None = None) -> None:
        self._repository = repository
        self._on_change = on_change
        self._entries: list[TimetableEntry] = []
        self._stale = True

    @property
    def scope_id(self) -> str:
        return self._repository.scope_id

    @property
    def is_stale(self) -> bool:
        return self._stale

    def refresh(self) -> None:
        self._entries = list(self._repository.load_all())
        self._stale = False
        clashes = audit_entries(self._entries)
        if clashes:
            logger.warning(
                "School %s has %d stored timetable clash(es): %s",
                self.scope_id,
                len(clashes),
                ", ".join(f"{entry_id}:{report.dimension.value}" for entry_id, report in clashes),
            )

    def mark_stale(self) -> None:
        self._stale = True

    def get_entry(self, entry_id: str) -> TimetableEntry:
        just_loaded = self._stale
        entry = _find(self._snapshot(), entry_id)
        if entry is None and not just_loaded:
            # Another writer may have added it since the snapshot was taken.
            self.refresh()
            entry = _find(self._entries, entry_id)
        if entry is None:
            raise NotFoundError("Timetable entry", entry_id)
        return entry

    def list_entries(
        self,
        *,
        teacher_id: str | None = None,
        class_id: str | None = None,
        day: Day | None = None,
    ) -> list[TimetableEntry]:
        entries = [
            entry
            for entry in self._snapshot()
            if (teacher_id is None or entry.teacher_id == teacher_id)
            and (class_id is None or entry.class_id == class_id)
            and (day is None or entry.day == day)
        ]
        return sorted(entries, key=lambda entry: cell_sort_key(entry.day, entry.slot))

    def check(self, candidate: TimetableEntry, exclude_id: str | None = None) -> list[ConflictReport]:
        self._require_same_scope(candidate)
        return find_conflicts(candidate, self._snapshot(), exclude_id)

    def create_entry(self, candidate: TimetableEntry) -> TimetableEntry:
        reports = self.check(candidate)
        if reports:
            self._reject(candidate, reports)

        entry = replace(candidate, id=str(uuid.uuid4()))
        saved = self._persist(self._repository.insert, entry)
        self._entries.append(saved)
        logger.info("Created timetable entry %s for school %s", saved.id, self.scope_id)
        self._notify("created", saved)
        return saved

    def update_entry(self, entry_id: str, patch: Mapping[str, object]) -> TimetableEntry:
        current = self.get_entry(entry_id)
        candidate = current.merge(patch)
        reports = self.check(candidate, exclude_id=entry_id)
        if reports:
            self._reject(candidate, reports)

        saved = self._persist(self._repository.update, candidate)
        self._entries = [saved if entry.id == entry_id else entry for entry in self._entries]
        logger.info("Updated timetable entry %s for school %s", entry_id, self.scope_id)
        self._notify("updated", saved)
        return saved

    def delete_entry(self, entry_id: str) -> None:
        current = self.get_entry(entry_id)
        if not self._repository.delete(entry_id):
            self.mark_stale()
            raise NotFoundError("Timetable entry", entry_id)
        self._entries = [entry for entry in self._entries if entry.id != entry_id]
        logger.info("Deleted timetable entry %s for school %s", entry_id, self.scope_id)
        self._notify("deleted", current)

    def _snapshot(self) -> list[TimetableEntry]:
        if self._stale:
            self.refresh()
        return self._entries

    def _persist(
        self,
        operation: Callable[[TimetableEntry], TimetableEntry],
        entry: TimetableEntry,
    ) -> TimetableEntry:
        try:
            return operation(entry)
        except (ConflictError, NotFoundError):
            # Someone else changed the school's timetable since our snapshot.
            self.mark_stale()
            raise

    def _reject(self, candidate: TimetableEntry, reports: list[ConflictReport]) -> None:
        logger.info(
            "Rejected timetable entry for school %s on %s %s: %s",
            self.scope_id,
            candidate.day.value,
            candidate.slot,
            ", ".join(report.dimension.value for report in reports),
        )
        raise ConflictError(reports)

    def _require_same_scope(self, candidate: TimetableEntry) -> None:
        if candidate.scope_id != self.scope_id:
            raise ValueError(
                f"Entry belongs to school {candidate.scope_id}, store manages school {self.scope_id}"
            )

    def _notify(self, action: str, entry: TimetableEntry) -> None:
        if self._on_change is not None:
            self._on_change(action, entry)


def _find(entries: list[TimetableEntry], entry_id: str) -> TimetableEntry | None:
    return next((entry for entry in entries if entry.id == entry_id), None)
