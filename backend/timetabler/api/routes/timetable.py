from fastapi import APIRouter, Depends, HTTPException, Query, Response, WebSocket, WebSocketDisconnect, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.api.deps import (
    Principal,
    get_current_principal,
    get_db,
    get_schedule_store,
    principal_from_token,
    require_roles,
    require_school_scope,
)
from timetabler.core.catalog import DAYS, TIME_SLOTS, Day
from timetabler.core.security import SCHEDULE_EDITOR_ROLES, UserRole
from timetabler.models.subject import Subject
from timetabler.models.teacher import Teacher
from timetabler.schemas.timetable import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictReportOut,
    SlotCatalogOut,
    TeacherSuggestionOut,
    TimetableEntryCreate,
    TimetableEntryOut,
    TimetableEntryUpdate,
)
from timetabler.services.assignment_advisor import suggest_teacher
from timetabler.services.change_hub import change_hub
from timetabler.services.conflict_service import busy_teacher_ids
from timetabler.services.entries import RosterTeacher, TimetableEntry
from timetabler.services.schedule_store import ScheduleStore

router = APIRouter()


def entry_out(entry: TimetableEntry) -> TimetableEntryOut:
    return TimetableEntryOut.model_validate(entry)


def load_roster(db: Session, school_id: str) -> list[RosterTeacher]:
    query = (
        select(Teacher)
        .where(Teacher.school_id == school_id, Teacher.is_active.is_(True))
        .order_by(Teacher.full_name, Teacher.id)
    )
    return [
        RosterTeacher(id=teacher.id, name=teacher.full_name, specialization=teacher.subject_specialization or "")
        for teacher in db.execute(query).scalars()
    ]


@router.get("/catalog", response_model=SlotCatalogOut)
def get_slot_catalog(principal: Principal = Depends(get_current_principal)) -> SlotCatalogOut:
    return SlotCatalogOut(days=list(DAYS), slots=list(TIME_SLOTS))


@router.get("/entries", response_model=list[TimetableEntryOut])
def list_entries(
    teacher_id: str | None = Query(default=None),
    class_id: str | None = Query(default=None),
    day: Day | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    store: ScheduleStore = Depends(get_schedule_store),
) -> list[TimetableEntryOut]:
    # Teachers only see their own schedule.
    if principal.role == UserRole.teacher:
        if not principal.teacher_id:
            return []
        teacher_id = principal.teacher_id
    entries = store.list_entries(teacher_id=teacher_id, class_id=class_id, day=day)
    return [entry_out(entry) for entry in entries]


@router.post("/entries", response_model=TimetableEntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: TimetableEntryCreate,
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    store: ScheduleStore = Depends(get_schedule_store),
) -> TimetableEntryOut:
    entry = store.create_entry(payload.to_entry(store.scope_id))
    return entry_out(entry)


@router.patch("/entries/{entry_id}", response_model=TimetableEntryOut)
def update_entry(
    entry_id: str,
    payload: TimetableEntryUpdate,
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    store: ScheduleStore = Depends(get_schedule_store),
) -> TimetableEntryOut:
    entry = store.update_entry(entry_id, payload.to_patch())
    return entry_out(entry)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: str,
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    store: ScheduleStore = Depends(get_schedule_store),
) -> Response:
    store.delete_entry(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/check", response_model=ConflictCheckResponse)
def check_entry(
    payload: ConflictCheckRequest,
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    store: ScheduleStore = Depends(get_schedule_store),
) -> ConflictCheckResponse:
    candidate = payload.to_entry(store.scope_id)
    reports = store.check(candidate, exclude_id=payload.exclude_id)
    busy = busy_teacher_ids(store.list_entries(), candidate.day, candidate.slot, exclude_id=payload.exclude_id)
    return ConflictCheckResponse(
        ok=not reports,
        conflicts=[ConflictReportOut.model_validate(report) for report in reports],
        busy_teacher_ids=sorted(busy),
    )


@router.get("/suggest-teacher", response_model=TeacherSuggestionOut)
def suggest_teacher_for_subject(
    subject_id: str | None = Query(default=None),
    subject_name: str | None = Query(default=None, max_length=200),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TeacherSuggestionOut:
    school_id = require_school_scope(principal)
    if subject_id:
        subject = db.get(Subject, subject_id)
        if subject is None or subject.school_id != school_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
        subject_name = subject.name
    subject_name = (subject_name or "").strip()
    if not subject_name:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide subject_id or subject_name",
        )

    roster = load_roster(db, school_id)
    teacher_id = suggest_teacher(subject_name, roster)
    teacher_name = next((teacher.name for teacher in roster if teacher.id == teacher_id), None)
    return TeacherSuggestionOut(subject_name=subject_name, teacher_id=teacher_id, teacher_name=teacher_name)


def _extract_ws_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token

    auth_header = websocket.headers.get("authorization")
    if not auth_header:
        return None
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


@router.websocket("/ws")
async def timetable_changes_websocket(websocket: WebSocket) -> None:
    token = _extract_ws_token(websocket)
    if not token:
        await websocket.close(code=1008)
        return

    try:
        principal = principal_from_token(token)
    except (JWTError, ValueError):
        await websocket.close(code=1008)
        return

    school_id = principal.school_id
    if not school_id:
        await websocket.close(code=1008)
        return

    await change_hub.subscribe(school_id, websocket)
    try:
        await websocket.send_json({"event": "connected", "school_id": school_id})
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await change_hub.unsubscribe(school_id, websocket)
