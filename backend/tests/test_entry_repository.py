import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from timetabler.core.catalog import Day
from timetabler.core.exceptions import ConflictError, NotFoundError, PersistenceError
from timetabler.models.timetable_entry import TimetableEntryRecord
from timetabler.services.entries import ConflictDimension, TimetableEntry
from timetabler.services.entry_repository import SqlAlchemyEntryRepository, violated_dimension
from timetabler.services.schedule_store import ScheduleStore

SCHOOL = "school-1"
SLOT = "08:00-08:45"


def entry(entry_id, *, class_id="C-A", teacher_id="T1", room="101", slot=SLOT, scope_id=SCHOOL):
    return TimetableEntry(
        id=entry_id,
        scope_id=scope_id,
        day=Day.monday,
        slot=slot,
        class_id=class_id,
        subject_id="Math",
        teacher_id=teacher_id,
        room=room,
    )


@pytest.fixture
def repository(db_session):
    return SqlAlchemyEntryRepository(db_session, SCHOOL)


def test_insert_and_load_round_trip(repository, db_session):
    saved = repository.insert(entry("e1"))

    assert saved == entry("e1")
    assert repository.load_all() == [entry("e1")]
    record = db_session.get(TimetableEntryRecord, "e1")
    assert record.school_id == SCHOOL
    assert record.room_number == "101"


def test_load_all_is_scoped_to_school(db_session, repository):
    SqlAlchemyEntryRepository(db_session, "school-2").insert(entry("other", scope_id="school-2"))
    repository.insert(entry("e1"))

    assert [item.id for item in repository.load_all()] == ["e1"]


@pytest.mark.parametrize(
    ("clashing", "dimension"),
    [
        (entry("e2", class_id="C-B", room="102"), ConflictDimension.teacher),
        (entry("e2", teacher_id="T2", room="102"), ConflictDimension.class_),
        (entry("e2", class_id="C-B", teacher_id="T2"), ConflictDimension.room),
    ],
)
def test_unique_constraints_become_conflict_errors(repository, clashing, dimension):
    repository.insert(entry("e1"))

    with pytest.raises(ConflictError) as excinfo:
        repository.insert(clashing)

    assert [(c.dimension, c.conflicting_entry_id) for c in excinfo.value.conflicts] == [(dimension, "e1")]
    assert [item.id for item in repository.load_all()] == ["e1"]


def test_entries_without_room_share_a_cell(repository):
    repository.insert(entry("e1", room=None))
    repository.insert(entry("e2", class_id="C-B", teacher_id="T2", room=None))

    assert len(repository.load_all()) == 2


def test_update_and_delete(repository):
    repository.insert(entry("e1"))

    updated = repository.update(entry("e1", room="303"))
    assert updated.room == "303"

    assert repository.delete("e1") is True
    assert repository.delete("e1") is False
    assert repository.load_all() == []


def test_update_missing_row_raises_not_found(repository):
    with pytest.raises(NotFoundError):
        repository.update(entry("missing"))


def test_update_into_taken_cell_is_rejected_by_storage(repository):
    repository.insert(entry("e1"))
    repository.insert(entry("e2", slot="08:45-09:30"))

    with pytest.raises(ConflictError) as excinfo:
        repository.update(entry("e2"))

    assert {c.conflicting_entry_id for c in excinfo.value.conflicts} == {"e1"}
    assert {item.slot for item in repository.load_all()} == {SLOT, "08:45-09:30"}


def test_storage_rejection_reaches_store_caller_after_clean_local_check(repository):
    first_actor = ScheduleStore(repository)
    second_actor = ScheduleStore(repository)
    second_actor.refresh()

    booked = first_actor.create_entry(entry(None))
    stale_candidate = entry(None, class_id="C-B", room="102")
    assert second_actor.check(stale_candidate) == []

    with pytest.raises(ConflictError) as excinfo:
        second_actor.create_entry(stale_candidate)

    assert [(c.dimension, c.conflicting_entry_id) for c in excinfo.value.conflicts] == [
        (ConflictDimension.teacher, booked.id)
    ]
    assert second_actor.list_entries() == [booked]


def test_violated_dimension_understands_both_drivers():
    postgres = 'duplicate key value violates unique constraint "uq_timetable_entries_class_slot"'
    sqlite = (
        "UNIQUE constraint failed: timetable_entries.school_id, timetable_entries.day_of_week, "
        "timetable_entries.time_slot, timetable_entries.room_number"
    )

    assert violated_dimension(postgres) == ConflictDimension.class_
    assert violated_dimension(sqlite) == ConflictDimension.room
    assert violated_dimension("NOT NULL constraint failed: timetable_entries.class_id") is None


def failing_commit(db_session, monkeypatch, error):
    rollbacks = []
    real_rollback = db_session.rollback

    def raise_error():
        raise error

    def tracked_rollback():
        rollbacks.append(True)
        real_rollback()

    monkeypatch.setattr(db_session, "commit", raise_error)
    monkeypatch.setattr(db_session, "rollback", tracked_rollback)
    return rollbacks


def test_storage_outage_becomes_persistence_error(repository, db_session, monkeypatch):
    store = ScheduleStore(repository)
    existing = store.create_entry(entry(None))
    rollbacks = failing_commit(
        db_session,
        monkeypatch,
        OperationalError("COMMIT", {}, Exception("database is locked")),
    )

    with pytest.raises(PersistenceError) as excinfo:
        store.create_entry(entry(None, class_id="C-B", teacher_id="T2", room="102"))

    assert excinfo.value.status_code == 503
    assert excinfo.value.message == "Timetable storage is unavailable"
    assert rollbacks == [True]
    assert store.list_entries() == [existing]

    monkeypatch.undo()
    assert repository.load_all() == [existing]


def test_unrecognised_integrity_error_becomes_persistence_error(repository, db_session, monkeypatch):
    reason = "NOT NULL constraint failed: timetable_entries.class_id"
    rollbacks = failing_commit(db_session, monkeypatch, IntegrityError("INSERT", {}, Exception(reason)))

    with pytest.raises(PersistenceError) as excinfo:
        repository.insert(entry("e1"))

    assert excinfo.value.status_code == 503
    assert excinfo.value.details == {"reason": reason}
    assert rollbacks == [True]

    monkeypatch.undo()
    assert repository.load_all() == []


def test_integrity_error_on_delete_becomes_persistence_error(repository, db_session, monkeypatch):
    repository.insert(entry("e1"))
    failing_commit(db_session, monkeypatch, IntegrityError("DELETE", {}, Exception("FOREIGN KEY constraint failed")))

    with pytest.raises(PersistenceError) as excinfo:
        repository.delete("e1")

    assert excinfo.value.status_code == 503
    monkeypatch.undo()
    assert [item.id for item in repository.load_all()] == ["e1"]


def test_entry_created_elsewhere_is_updated_through_storage(repository):
    first_actor = ScheduleStore(repository)
    second_actor = ScheduleStore(repository)
    first_actor.refresh()

    created = second_actor.create_entry(entry(None))
    updated = first_actor.update_entry(created.id, {"subject_id": "Art"})

    assert updated.subject_id == "Art"
    assert [item.subject_id for item in repository.load_all()] == ["Art"]
    assert first_actor.is_stale is False
