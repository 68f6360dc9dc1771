from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from timetabler.core.security import UserRole, decode_token
from timetabler.db.session import SessionLocal
from timetabler.services.audit import log_activity
from timetabler.services.change_hub import change_hub
from timetabler.services.entries import TimetableEntry
from timetabler.services.entry_repository import SqlAlchemyEntryRepository
from timetabler.services.schedule_store import ScheduleStore

security = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole
    school_id: str | None = None
    teacher_id: str | None = None


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def principal_from_token(token: str) -> Principal:
    """Raises ``JWTError`` or ``ValueError`` for unusable tokens."""
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise JWTError("Token has no subject")
    return Principal(
        user_id=user_id,
        role=UserRole(payload.get("role")),
        school_id=payload.get("school_id"),
        teacher_id=payload.get("teacher_id"),
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        return principal_from_token(credentials.credentials)
    except (JWTError, ValueError) as exc:
        raise credentials_exception from exc


def require_roles(*roles: UserRole) -> Callable[[Principal], Principal]:
    allowed_roles: Iterable[UserRole] = set(roles)

    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return principal

    return role_checker


def require_school_scope(principal: Principal) -> str:
    if not principal.school_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No school associated with this account")
    return principal.school_id


def get_schedule_store(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ScheduleStore:
    school_id = require_school_scope(principal)

    def record_change(action: str, entry: TimetableEntry) -> None:
        log_activity(
            db,
            principal=principal,
            action=f"timetable.{action}",
            entity_type="timetable_entry",
            entity_id=entry.id,
            details=entry.to_dict(),
        )
        db.commit()
        change_hub.announce(school_id, action, entry)

    return ScheduleStore(SqlAlchemyEntryRepository(db, school_id), on_change=record_change)
