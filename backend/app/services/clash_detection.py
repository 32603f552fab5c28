"""Clash checks for a candidate section or course against a timetable.

Both checks stop at the first collision they find so the caller can report a
single actionable problem; the client re-runs them after the user fixes it.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from app.services.encodings import ExamInterval, SlotEntry, course_exam_intervals, decode_room_time


@dataclass(frozen=True)
class ClassHourClash:
    clash: bool
    course: str | None = None
    slot: str | None = None


@dataclass(frozen=True)
class ExamHourClash:
    clash: bool
    same_course: bool
    exam: str | None = None
    course: str | None = None


def class_hour_clash(slots: Iterable[SlotEntry], room_times: Iterable[str]) -> ClassHourClash:
    occupied: dict[str, str] = {}
    for slot in slots:
        occupied[slot.key] = slot.course_code

    for room_time in room_times:
        key = decode_room_time(room_time)
        owner = occupied.get(key)
        if owner is not None:
            return ClassHourClash(clash=True, course=owner, slot=key)
    return ClassHourClash(clash=False)


def intervals_overlap(new_start: datetime, new_end: datetime, start: datetime, end: datetime) -> bool:
    return (
        (new_start <= start and new_end > start)
        or (new_start < end and new_end >= end)
        or (new_start >= start and new_end <= end)
    )


def exam_hour_clash(intervals: Sequence[ExamInterval], course) -> ExamHourClash:
    """Check a course's exams against the intervals already in a timetable.

    A course that is already present never introduces a new exam conflict,
    so it short-circuits with ``same_course=True``.
    """
    if any(interval.course_code == course.code for interval in intervals):
        return ExamHourClash(clash=False, same_course=True)

    for candidate in course_exam_intervals(course):
        for existing in intervals:
            if intervals_overlap(candidate.start, candidate.end, existing.start, existing.end):
                return ExamHourClash(
                    clash=True,
                    same_course=False,
                    exam=candidate.kind.value.lower(),
                    course=existing.course_code,
                )
    return ExamHourClash(clash=False, same_course=False)
