import pytest

from timetabler.core.catalog import Day
from timetabler.services.conflict_service import audit_entries, busy_teacher_ids, find_conflicts, has_conflicts
from timetabler.services.entries import ConflictDimension, TimetableEntry

SLOT = "08:00-08:45"


def make_entry(entry_id=None, *, day=Day.monday, slot=SLOT, class_id="C-A", subject_id="Math",
               teacher_id="T1", room="101", scope_id="school-1"):
    return TimetableEntry(
        id=entry_id,
        day=day,
        slot=slot,
        class_id=class_id,
        subject_id=subject_id,
        teacher_id=teacher_id,
        room=room,
        scope_id=scope_id,
    )


@pytest.fixture
def existing():
    return [
        make_entry("e1"),
        make_entry("e2", class_id="C-B", teacher_id="T2", room="102"),
        make_entry("e3", slot="08:45-09:30", class_id="C-A", teacher_id="T1", room="101"),
    ]


def test_teacher_double_booking_is_reported(existing):
    candidate = make_entry(class_id="C-C", subject_id="Science", room="103")

    reports = find_conflicts(candidate, existing)

    assert len(reports) == 1
    assert reports[0].dimension == ConflictDimension.teacher
    assert reports[0].conflicting_entry_id == "e1"
    assert "Teacher is already scheduled" in reports[0].message


def test_room_double_booking_is_reported(existing):
    candidate = make_entry(class_id="C-C", teacher_id="T3", room="102")

    reports = find_conflicts(candidate, existing)

    assert [(r.dimension, r.conflicting_entry_id) for r in reports] == [(ConflictDimension.room, "e2")]
    assert "Room 102" in reports[0].message


def test_all_dimensions_reported_in_teacher_class_room_order(existing):
    # Clashes with e2 on teacher, e1 on class and e1 on room.
    candidate = make_entry(class_id="C-A", teacher_id="T2", room="101")

    reports = find_conflicts(candidate, existing)

    assert [(r.dimension, r.conflicting_entry_id) for r in reports] == [
        (ConflictDimension.teacher, "e2"),
        (ConflictDimension.class_, "e1"),
        (ConflictDimension.room, "e1"),
    ]


def test_same_resources_in_another_cell_do_not_conflict(existing):
    other_day = make_entry(day=Day.tuesday)
    other_slot = make_entry(slot="13:45-14:30")

    assert find_conflicts(other_day, existing) == []
    assert find_conflicts(other_slot, existing) == []


def test_empty_room_never_conflicts():
    stored = [make_entry("e1", room=None), make_entry("e2", class_id="C-B", teacher_id="T2", room="")]
    candidate = make_entry(class_id="C-C", teacher_id="T3", room=None)
    with_room = make_entry(class_id="C-C", teacher_id="T3", room="101")

    assert find_conflicts(candidate, stored) == []
    assert find_conflicts(with_room, stored) == []


def test_blank_room_is_treated_as_unspecified():
    assert make_entry(room="   ").room is None
    assert make_entry(room=" 101 ").room == "101"


def test_exclude_id_allows_editing_own_entry(existing):
    for entry in existing:
        assert find_conflicts(entry, existing, exclude_id=entry.id) == []


def test_without_exclude_id_entry_conflicts_with_itself(existing):
    reports = find_conflicts(existing[0], existing)

    assert {r.dimension for r in reports} == {
        ConflictDimension.teacher,
        ConflictDimension.class_,
        ConflictDimension.room,
    }


def test_other_schools_are_never_compared(existing):
    candidate = make_entry(scope_id="school-2")

    assert find_conflicts(candidate, existing) == []


def test_detection_is_pure_and_deterministic(existing):
    snapshot = list(existing)
    candidate = make_entry(class_id="C-A", teacher_id="T2", room="101")

    first = find_conflicts(candidate, existing)
    second = find_conflicts(candidate, existing)

    assert first == second
    assert existing == snapshot


def test_clean_candidate_keeps_invariants(existing):
    candidate = make_entry("new", class_id="C-Z", teacher_id="T9", room="999")

    assert not has_conflicts(candidate, existing)
    assert audit_entries(existing + [candidate]) == []


def test_busy_teacher_ids_for_cell(existing):
    assert busy_teacher_ids(existing, Day.monday, SLOT) == {"T1", "T2"}
    assert busy_teacher_ids(existing, Day.monday, SLOT, exclude_id="e1") == {"T2"}
    assert busy_teacher_ids(existing, Day.friday, SLOT) == set()


def test_audit_entries_flags_clashes_in_stored_set():
    stored = [make_entry("e1"), make_entry("e2", class_id="C-B", room="102")]

    findings = audit_entries(stored)

    assert len(findings) == 1
    entry_id, report = findings[0]
    assert entry_id == "e2"
    assert report.dimension == ConflictDimension.teacher
    assert report.conflicting_entry_id == "e1"
