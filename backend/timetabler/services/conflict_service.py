from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from timetabler.core.catalog import Day
from timetabler.services.entries import ConflictDimension, ConflictReport, TimetableEntry


def _peers_in_cell(
    candidate: TimetableEntry,
    existing_entries: Iterable[TimetableEntry],
    exclude_id: str | None,
) -> list[TimetableEntry]:
    peers: list[TimetableEntry] = []
    for entry in existing_entries:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if not entry.same_cell(candidate):
            continue
        peers.append(entry)
    return peers


def find_conflicts(
    candidate: TimetableEntry,
    existing_entries: Iterable[TimetableEntry],
    exclude_id: str | None = None,
) -> list[ConflictReport]:
    """Return every way ``candidate`` would collide with ``existing_entries``.

    Teacher reports come first, then class, then room; inside a dimension the
    order follows ``existing_entries``. An entry whose id equals
    ``exclude_id`` is ignored, which is how an edit avoids clashing with its
    own stored version. Rooms only collide when both sides name one.
    """
    peers = _peers_in_cell(candidate, existing_entries, exclude_id)
    cell = f"{candidate.day.value} at {candidate.slot}"
    reports: list[ConflictReport] = []

    for entry in peers:
        if entry.teacher_id == candidate.teacher_id:
            reports.append(
                ConflictReport(
                    dimension=ConflictDimension.teacher,
                    conflicting_entry_id=entry.id,
                    message=f"Teacher is already scheduled for class {entry.class_id} on {cell}",
                )
            )

    for entry in peers:
        if entry.class_id == candidate.class_id:
            reports.append(
                ConflictReport(
                    dimension=ConflictDimension.class_,
                    conflicting_entry_id=entry.id,
                    message=f"Class {entry.class_id} already has a scheduled period on {cell}",
                )
            )

    if candidate.room:
        for entry in peers:
            if entry.room and entry.room == candidate.room:
                reports.append(
                    ConflictReport(
                        dimension=ConflictDimension.room,
                        conflicting_entry_id=entry.id,
                        message=f"Room {candidate.room} is already booked on {cell}",
                    )
                )

    return reports


def has_conflicts(
    candidate: TimetableEntry,
    existing_entries: Iterable[TimetableEntry],
    exclude_id: str | None = None,
) -> bool:
    return bool(find_conflicts(candidate, existing_entries, exclude_id))


def busy_teacher_ids(
    entries: Iterable[TimetableEntry],
    day: Day,
    slot: str,
    exclude_id: str | None = None,
) -> set[str]:
    busy: set[str] = set()
    for entry in entries:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if entry.day == day and entry.slot == slot:
            busy.add(entry.teacher_id)
    return busy


def audit_entries(entries: Iterable[TimetableEntry]) -> list[tuple[str | None, ConflictReport]]:
    """Pairwise sweep of an already stored set, bucketed by cell.

    Returns ``(entry_id, report)`` pairs; a consistent set yields nothing.
    Used to flag rows that predate the database constraints.
    """
    by_cell: dict[tuple[str, Day, str], list[TimetableEntry]] = defaultdict(list)
    for entry in entries:
        by_cell[(entry.scope_id, entry.day, entry.slot)].append(entry)

    findings: list[tuple[str | None, ConflictReport]] = []
    for cell_entries in by_cell.values():
        for index in range(1, len(cell_entries)):
            current = cell_entries[index]
            for report in find_conflicts(current, cell_entries[:index]):
                findings.append((current.id, report))
    return findings
