from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from timetabler.models.activity_log import ActivityLog

if TYPE_CHECKING:
    from timetabler.api.deps import Principal


def log_activity(
    db: Session,
    *,
    principal: Principal | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        school_id=principal.school_id if principal is not None else None,
        user_id=principal.user_id if principal is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)
