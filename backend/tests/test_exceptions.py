from timetabler.core.exceptions import AppError, ConflictError, NotFoundError, PersistenceError
from timetabler.services.entries import ConflictDimension, ConflictReport


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_conflict_error_structure():
    report = ConflictReport(ConflictDimension.room, "e1", "Room 101 is already booked on Monday at 08:00-08:45")
    err = ConflictError([report])

    assert isinstance(err, AppError)
    assert err.status_code == 409
    assert err.conflicts == [report]
    assert err.details == {
        "conflicts": [
            {
                "dimension": "room",
                "conflicting_entry_id": "e1",
                "message": "Room 101 is already booked on Monday at 08:00-08:45",
            }
        ]
    }


def test_not_found_and_persistence_errors():
    missing = NotFoundError("Timetable entry", "e9")
    assert missing.status_code == 404
    assert missing.message == "Timetable entry with id e9 not found"

    storage = PersistenceError("Timetable storage is unavailable")
    assert storage.status_code == 503
    assert storage.details == {}
