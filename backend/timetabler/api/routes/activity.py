from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.api.deps import Principal, get_db, require_roles
from timetabler.core.security import SCHEDULE_EDITOR_ROLES, UserRole
from timetabler.models.activity_log import ActivityLog
from timetabler.schemas.activity import ActivityLogOut

router = APIRouter()


@router.get("/activity/logs", response_model=list[ActivityLogOut])
def list_activity_logs(
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    db: Session = Depends(get_db),
) -> list[ActivityLogOut]:
    query = select(ActivityLog).order_by(ActivityLog.created_at.desc()).limit(500)
    # School admins only see their own school's trail.
    if principal.role != UserRole.super_admin:
        query = query.where(ActivityLog.school_id == principal.school_id)
    return list(db.execute(query).scalars())
