import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetabler.core.catalog import Day
from timetabler.db.base import Base

TEACHER_SLOT_CONSTRAINT = "uq_timetable_entries_teacher_slot"
CLASS_SLOT_CONSTRAINT = "uq_timetable_entries_class_slot"
ROOM_SLOT_INDEX = "uq_timetable_entries_room_slot"


class TimetableEntryRecord(Base):
    __tablename__ = "timetable_entries"
    __table_args__ = (
        UniqueConstraint("school_id", "day_of_week", "time_slot", "teacher_id", name=TEACHER_SLOT_CONSTRAINT),
        UniqueConstraint("school_id", "day_of_week", "time_slot", "class_id", name=CLASS_SLOT_CONSTRAINT),
        Index(
            ROOM_SLOT_INDEX,
            "school_id",
            "day_of_week",
            "time_slot",
            "room_number",
            unique=True,
            sqlite_where=text("room_number IS NOT NULL"),
            postgresql_where=text("room_number IS NOT NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    day_of_week: Mapped[Day] = mapped_column(
        SAEnum(Day, name="timetable_day", values_callable=lambda enum_cls: [item.value for item in enum_cls]),
        nullable=False,
    )
    time_slot: Mapped[str] = mapped_column(String(20), nullable=False)
    class_id: Mapped[str] = mapped_column(String(36), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    room_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
