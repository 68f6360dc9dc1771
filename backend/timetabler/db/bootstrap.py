from __future__ import annotations

import logging

from sqlalchemy import inspect

import timetabler.models  # noqa: F401
from timetabler.core.config import get_settings
from timetabler.db.base import Base
from timetabler.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "timetable_entries": {
        "id",
        "school_id",
        "day_of_week",
        "time_slot",
        "class_id",
        "subject_id",
        "teacher_id",
        "room_number",
    },
    "teachers": {"id", "school_id", "full_name", "subject_specialization", "is_active"},
    "subjects": {"id", "school_id", "name", "code"},
    "activity_logs": {"id", "school_id", "user_id", "action"},
}


def missing_schema_items(connection) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            missing_tables.append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema() -> None:
    settings = get_settings()
    if settings.auto_create_schema:
        # Creates missing tables only; column changes go through Alembic.
        Base.metadata.create_all(bind=engine)

    with engine.connect() as connection:
        missing_tables, missing_columns = missing_schema_items(connection)
    if missing_tables:
        logger.warning("Database is missing tables %s; run `alembic upgrade head`", ", ".join(missing_tables))
    for table_name, columns in missing_columns.items():
        logger.warning("Table %s is missing columns %s; run `alembic upgrade head`", table_name, ", ".join(columns))
