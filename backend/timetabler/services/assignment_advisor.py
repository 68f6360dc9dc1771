"""Specialization-based teacher suggestions for the entry form.

Purely advisory: the schedule store never consults it, and a suggested
teacher can still be rejected by the conflict check.
"""
from __future__ import annotations

from collections.abc import Iterable

from timetabler.services.entries import RosterTeacher


def is_specialist(teacher: RosterTeacher, subject_name: str) -> bool:
    needle = subject_name.strip().casefold()
    if not needle:
        return False
    return needle in (teacher.specialization or "").casefold()


def suggest_teacher(subject_name: str, roster: Iterable[RosterTeacher]) -> str | None:
    for teacher in roster:
        if is_specialist(teacher, subject_name):
            return teacher.id
    return None


def rank_specialists(subject_name: str, roster: Iterable[RosterTeacher]) -> list[RosterTeacher]:
    teachers = list(roster)
    return sorted(teachers, key=lambda teacher: not is_specialist(teacher, subject_name))
