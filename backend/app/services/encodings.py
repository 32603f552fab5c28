"""Typed records for a timetable's persisted list fields and their string codecs.

The ``timings``, ``exam_times`` and ``warnings`` columns hold plain strings:

* slot: ``"<COURSE_CODE>:<DAY><HOUR>"``
* exam interval: ``"<COURSE_CODE>|<MIDSEM|COMPRE>|<ISO8601 start>|<ISO8601 end>"``
* warning: ``"<COURSE_CODE>:<missing type codes>"``

The engine works on the records below and only encodes/decodes at the
persistence boundary. Decoders assume well-formed input.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from app.models.section import SectionType


@dataclass(frozen=True)
class SlotEntry:
    course_code: str
    key: str


class ExamKind(str, Enum):
    MIDSEM = "MIDSEM"
    COMPRE = "COMPRE"


@dataclass(frozen=True)
class ExamInterval:
    course_code: str
    kind: ExamKind
    start: datetime
    end: datetime


@dataclass(frozen=True)
class WarningEntry:
    course_code: str
    missing: tuple[SectionType, ...]


def decode_room_time(room_time: str) -> str:
    """Reduce a ``ROOM:AUX:DAY:HOUR`` entry to its ``DAY + HOUR`` slot key."""
    parts = room_time.split(":")
    return f"{parts[2]}{parts[3]}"


def encode_slot(entry: SlotEntry) -> str:
    return f"{entry.course_code}:{entry.key}"


def decode_slot(value: str) -> SlotEntry:
    # Course codes contain spaces ("CS F211") but never colons.
    course_code, _, key = value.rpartition(":")
    return SlotEntry(course_code=course_code, key=key)


def format_timestamp(value: datetime) -> str:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = f"{value[:-1]}+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode_exam(interval: ExamInterval) -> str:
    return "|".join(
        (
            interval.course_code,
            interval.kind.value,
            format_timestamp(interval.start),
            format_timestamp(interval.end),
        )
    )


def decode_exam(value: str) -> ExamInterval:
    course_code, kind, start, end = value.split("|")
    return ExamInterval(
        course_code=course_code,
        kind=ExamKind(kind),
        start=parse_timestamp(start),
        end=parse_timestamp(end),
    )


def course_exam_intervals(course) -> list[ExamInterval]:
    """Midsem then compre interval of a course, skipping kinds without both timestamps."""
    intervals: list[ExamInterval] = []
    candidates = (
        (ExamKind.MIDSEM, course.midsem_start_time, course.midsem_end_time),
        (ExamKind.COMPRE, course.compre_start_time, course.compre_end_time),
    )
    for kind, start, end in candidates:
        if start is None or end is None:
            continue
        intervals.append(
            ExamInterval(
                course_code=course.code,
                kind=kind,
                start=parse_timestamp(format_timestamp(start)),
                end=parse_timestamp(format_timestamp(end)),
            )
        )
    return intervals


def encode_warning(entry: WarningEntry) -> str:
    return f"{entry.course_code}:{''.join(item.value for item in entry.missing)}"


def decode_warning(value: str) -> WarningEntry:
    course_code, _, missing = value.rpartition(":")
    return WarningEntry(course_code=course_code, missing=tuple(SectionType(code) for code in missing))


def decode_slots(values: Iterable[str]) -> list[SlotEntry]:
    return [decode_slot(value) for value in values]


def decode_exams(values: Iterable[str]) -> list[ExamInterval]:
    return [decode_exam(value) for value in values]


def decode_warnings(values: Iterable[str]) -> list[WarningEntry]:
    return [decode_warning(value) for value in values]
