"""Adding and removing sections of a timetable.

Each mutation holds the timetable's lock, re-reads the row with a row lock,
runs the clash and duplicate checks against that fresh state, and commits
section membership, timings, warnings and exam times as one transaction.
"""
from __future__ import annotations

from collections import Counter
from functools import partial
import logging

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    ClassHourClashError,
    DuplicateSectionTypeError,
    ExamHourClashError,
    ResourceNotFoundError,
    TimetableStateError,
)
from app.models.timetable import Timetable
from app.models.user import User
from app.services.audit import log_activity
from app.services.catalog import CatalogService
from app.services.clash_detection import class_hour_clash, exam_hour_clash
from app.services.encodings import (
    SlotEntry,
    course_exam_intervals,
    decode_exams,
    decode_room_time,
    decode_slots,
    decode_warnings,
)
from app.services.lifecycle import ensure_section_add_allowed, ensure_section_remove_allowed
from app.services.search_index import SearchIndexClient, build_index_snapshot
from app.services.section_warnings import update_section_warnings
from app.services.timetable_locks import timetable_locks
from app.services.timetable_repository import TimetableRepository

logger = logging.getLogger(__name__)


def add_section(db: Session, *, timetable_id: int, section_id: str, actor: User) -> Timetable:
    settings = get_settings()
    repository = TimetableRepository(db)
    catalog = CatalogService(db)

    with timetable_locks.hold(timetable_id, timeout=settings.timetable_lock_timeout_seconds):
        with repository.transaction("add section"):
            timetable = repository.get_owned(timetable_id, actor, for_update=True)
            ensure_section_add_allowed(timetable)

            section = catalog.get_section(section_id)
            course = catalog.get_course(section.course_id)
            if course.archived:
                raise TimetableStateError("course is archived")

            slots = decode_slots(timetable.timings)
            class_clash = class_hour_clash(slots, section.room_time)
            if class_clash.clash:
                raise ClassHourClashError(class_clash.course, class_clash.slot)

            exams = decode_exams(timetable.exam_times)
            exam_clash = exam_hour_clash(exams, course)
            if exam_clash.clash and not exam_clash.same_course:
                raise ExamHourClashError(exam_clash.course, exam_clash.exam)

            if any(
                existing.course_id == section.course_id and existing.type == section.type
                for existing in timetable.sections
            ):
                raise DuplicateSectionTypeError(course.code, section.type.value)

            warnings = update_section_warnings(
                course.code,
                section.type,
                catalog.offered_section_types(course.id),
                True,
                decode_warnings(timetable.warnings),
            )
            new_slots = [SlotEntry(course_code=course.code, key=decode_room_time(item)) for item in section.room_time]
            new_exams = None if exam_clash.same_course else [*exams, *course_exam_intervals(course)]

            repository.apply_section_change(
                timetable,
                sections=[*timetable.sections, section],
                slots=[*slots, *new_slots],
                warnings=warnings,
                exams=new_exams,
            )
            log_activity(
                db,
                user=actor,
                action="timetable.section.add",
                timetable_id=timetable.id,
                details={"section_id": section.id, "course": course.code, "type": section.type.value},
            )

    db.refresh(timetable)
    logger.info(
        "Section added | timetable_id=%s | section_id=%s | course=%s",
        timetable.id,
        section.id,
        course.code,
    )
    return timetable


def remove_section(
    db: Session,
    search_index: SearchIndexClient,
    *,
    timetable_id: int,
    section_id: str,
    actor: User,
) -> Timetable:
    settings = get_settings()
    repository = TimetableRepository(db)
    catalog = CatalogService(db)

    with timetable_locks.hold(timetable_id, timeout=settings.timetable_lock_timeout_seconds):
        with repository.transaction("remove section"):
            timetable = repository.get_owned(timetable_id, actor, for_update=True)
            ensure_section_remove_allowed(timetable)

            section = next((item for item in timetable.sections if item.id == section_id), None)
            if section is None:
                raise ResourceNotFoundError("section", section_id, "section not found in timetable")
            course = catalog.get_course(section.course_id)

            remaining = [item for item in timetable.sections if item.id != section.id]
            course_remains = any(item.course_id == section.course_id for item in remaining)
            previous_snapshot = build_index_snapshot(timetable) if timetable.is_published else None

            # One timing entry per weekly occurrence of the removed section.
            to_strip = Counter(
                SlotEntry(course_code=course.code, key=decode_room_time(item)) for item in section.room_time
            )
            kept_slots: list[SlotEntry] = []
            for slot in decode_slots(timetable.timings):
                if to_strip[slot] > 0:
                    to_strip[slot] -= 1
                    continue
                kept_slots.append(slot)

            exams = None
            if not course_remains:
                exams = [item for item in decode_exams(timetable.exam_times) if item.course_code != course.code]

            warnings = update_section_warnings(
                course.code,
                section.type,
                catalog.offered_section_types(course.id),
                False,
                decode_warnings(timetable.warnings),
                course_remains=course_remains,
            )
            repository.apply_section_change(
                timetable,
                sections=remaining,
                slots=kept_slots,
                warnings=warnings,
                exams=exams,
            )

            if previous_snapshot is not None:
                db.flush()
                search_index.add_timetable(build_index_snapshot(timetable))
                repository.compensate_on_rollback(partial(search_index.add_timetable, previous_snapshot))
            log_activity(
                db,
                user=actor,
                action="timetable.section.remove",
                timetable_id=timetable.id,
                details={"section_id": section.id, "course": course.code, "type": section.type.value},
            )

    db.refresh(timetable)
    logger.info(
        "Section removed | timetable_id=%s | section_id=%s | course=%s",
        timetable.id,
        section_id,
        course.code,
    )
    return timetable
