from timetabler.models.activity_log import ActivityLog  # noqa: F401
from timetabler.models.subject import Subject  # noqa: F401
from timetabler.models.teacher import Teacher  # noqa: F401
from timetabler.models.timetable_entry import TimetableEntryRecord  # noqa: F401
