from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.api.deps import Principal, get_current_principal, get_db, require_roles, require_school_scope
from timetabler.core.security import SCHEDULE_EDITOR_ROLES
from timetabler.models.subject import Subject
from timetabler.models.teacher import Teacher
from timetabler.schemas.roster import SubjectCreate, SubjectOut, TeacherCreate, TeacherOut
from timetabler.services.assignment_advisor import rank_specialists
from timetabler.services.audit import log_activity
from timetabler.services.entries import RosterTeacher

router = APIRouter()


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(
    subject_name: str | None = None,
    include_inactive: bool = False,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[TeacherOut]:
    school_id = require_school_scope(principal)
    query = select(Teacher).where(Teacher.school_id == school_id).order_by(Teacher.full_name, Teacher.id)
    if not include_inactive:
        query = query.where(Teacher.is_active.is_(True))
    teachers = list(db.execute(query).scalars())
    if not subject_name:
        return teachers

    # Specialists for the subject float to the top, roster order otherwise kept.
    by_id = {teacher.id: teacher for teacher in teachers}
    ranked = rank_specialists(
        subject_name,
        [
            RosterTeacher(id=teacher.id, name=teacher.full_name, specialization=teacher.subject_specialization or "")
            for teacher in teachers
        ],
    )
    return [by_id[item.id] for item in ranked]


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    db: Session = Depends(get_db),
) -> TeacherOut:
    school_id = require_school_scope(principal)
    teacher = Teacher(school_id=school_id, **payload.model_dump())
    db.add(teacher)
    db.flush()
    log_activity(db, principal=principal, action="teacher.create", entity_type="teacher", entity_id=teacher.id)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    school_id = require_school_scope(principal)
    query = select(Subject).where(Subject.school_id == school_id).order_by(Subject.name, Subject.id)
    return list(db.execute(query).scalars())


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    principal: Principal = Depends(require_roles(*SCHEDULE_EDITOR_ROLES)),
    db: Session = Depends(get_db),
) -> SubjectOut:
    school_id = require_school_scope(principal)
    existing = db.execute(
        select(Subject).where(Subject.school_id == school_id, Subject.code == payload.code)
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject code already exists")
    subject = Subject(school_id=school_id, **payload.model_dump())
    db.add(subject)
    db.flush()
    log_activity(db, principal=principal, action="subject.create", entity_type="subject", entity_id=subject.id)
    db.commit()
    db.refresh(subject)
    return subject
