"""Fixed weekly catalog of school days and teaching slots.

Slots are opaque identifiers compared only by equality; the catalog itself
guarantees that no two slots overlap.
"""
from __future__ import annotations

from enum import Enum


class Day(str, Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"


DAYS: tuple[Day, ...] = tuple(Day)

# 11:00-11:30 is the morning break.
TIME_SLOTS: tuple[str, ...] = (
    "08:00-08:45",
    "08:45-09:30",
    "09:30-10:15",
    "10:15-11:00",
    "11:30-12:15",
    "12:15-13:00",
    "13:00-13:45",
    "13:45-14:30",
)

_DAY_ORDER = {day: index for index, day in enumerate(DAYS)}
_SLOT_ORDER = {slot: index for index, slot in enumerate(TIME_SLOTS)}


def is_known_slot(value: str) -> bool:
    return value in _SLOT_ORDER


def cell_sort_key(day: Day, slot: str) -> tuple[int, int, str]:
    return (_DAY_ORDER.get(day, len(DAYS)), _SLOT_ORDER.get(slot, len(TIME_SLOTS)), slot)
