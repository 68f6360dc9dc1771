from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from jose import jwt

from timetabler.core.config import get_settings


class UserRole(str, Enum):
    super_admin = "super_admin"
    school_admin = "school_admin"
    teacher = "teacher"
    student = "student"
    parent = "parent"


SCHEDULE_EDITOR_ROLES = (UserRole.super_admin, UserRole.school_admin)


def create_access_token(
    subject: str,
    *,
    role: UserRole | str,
    school_id: str | None = None,
    teacher_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {
        "sub": subject,
        "role": UserRole(role).value,
        "exp": expire,
    }
    if school_id:
        claims["school_id"] = school_id
    if teacher_id:
        claims["teacher_id"] = teacher_id
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
