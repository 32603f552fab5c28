"""Timetable lifecycle: draft & private -> published -> archived.

Every transition runs inside ``TimetableRepository.transaction`` so that the
row change, the search index call and the activity log entry succeed or fail
together.
"""
from __future__ import annotations

from functools import partial
import logging

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import InvalidRequestError, ResourceNotFoundError, TimetableStateError
from app.models.timetable import DEFAULT_TIMETABLE_NAME, Timetable
from app.models.user import User
from app.services.audit import log_activity
from app.services.search_index import SearchIndexClient, build_index_snapshot
from app.services.timetable_locks import timetable_locks
from app.services.timetable_repository import TimetableRepository

logger = logging.getLogger(__name__)


def ensure_section_add_allowed(timetable: Timetable) -> None:
    if timetable.archived:
        raise TimetableStateError("timetable is archived")
    if not timetable.draft:
        raise TimetableStateError("timetable is not a draft")


def ensure_section_remove_allowed(timetable: Timetable) -> None:
    if timetable.archived:
        raise TimetableStateError("timetable is archived")


def ensure_metadata_change_allowed(timetable: Timetable, *, is_private: bool, is_draft: bool) -> None:
    if is_draft and not is_private:
        raise InvalidRequestError("draft timetable can not be public")
    if timetable.archived and is_draft:
        raise TimetableStateError("archived timetable can not be a draft")

    leaving_private_draft = not is_draft or not is_private
    if not leaving_private_draft:
        return
    # A published timetable can be emptied by removals; it must not stay published.
    landing_published = not is_draft and not is_private
    if not timetable.sections and (timetable.draft or landing_published):
        raise TimetableStateError("cannot publish empty timetable")
    if timetable.warnings:
        raise TimetableStateError(
            "cannot publish timetable with warnings",
            details={"warnings": list(timetable.warnings)},
        )


def create_timetable(db: Session, *, author: User) -> Timetable:
    settings = get_settings()
    repository = TimetableRepository(db)
    timetable = Timetable(
        author_id=author.id,
        name=DEFAULT_TIMETABLE_NAME,
        degrees=list(author.degrees or []),
        private=True,
        draft=True,
        archived=False,
        acad_year=settings.acad_year,
        year=settings.acad_year - author.batch + 1,
        semester=settings.semester,
        sections=[],
        timings=[],
        exam_times=[],
        warnings=[],
    )
    with repository.transaction("create timetable"):
        db.add(timetable)
        db.flush()
        log_activity(db, user=author, action="timetable.create", timetable_id=timetable.id)
    db.refresh(timetable)
    logger.info("Timetable created | timetable_id=%s | author_id=%s", timetable.id, author.id)
    return timetable


def copy_timetable(db: Session, *, source_id: int, actor: User) -> Timetable:
    settings = get_settings()
    repository = TimetableRepository(db)
    source = repository.get(source_id)
    if source is None or (source.private and source.author_id != actor.id):
        raise ResourceNotFoundError("timetable", source_id, "timetable to be copied not found")
    if source.archived:
        raise TimetableStateError("timetable is archived. cannot copy old timetables")

    copied = Timetable(
        author_id=actor.id,
        name=DEFAULT_TIMETABLE_NAME,
        degrees=list(actor.degrees or []),
        private=True,
        draft=True,
        archived=False,
        acad_year=settings.acad_year,
        year=settings.acad_year - actor.batch + 1,
        semester=settings.semester,
        sections=list(source.sections),
        timings=list(source.timings),
        exam_times=list(source.exam_times),
        warnings=list(source.warnings),
    )
    with repository.transaction("copy timetable"):
        db.add(copied)
        db.flush()
        log_activity(
            db,
            user=actor,
            action="timetable.copy",
            timetable_id=copied.id,
            details={"source_id": source.id},
        )
    db.refresh(copied)
    logger.info("Timetable copied | source_id=%s | timetable_id=%s", source.id, copied.id)
    return copied


def update_metadata(
    db: Session,
    search_index: SearchIndexClient,
    *,
    timetable_id: int,
    actor: User,
    name: str,
    is_private: bool,
    is_draft: bool,
) -> Timetable:
    settings = get_settings()
    repository = TimetableRepository(db)
    with timetable_locks.hold(timetable_id, timeout=settings.timetable_lock_timeout_seconds):
        with repository.transaction("edit timetable metadata"):
            timetable = repository.get_owned(timetable_id, actor, for_update=True)
            ensure_metadata_change_allowed(timetable, is_private=is_private, is_draft=is_draft)

            previous_snapshot = build_index_snapshot(timetable) if timetable.is_published else None
            timetable.name = name
            timetable.private = is_private
            timetable.draft = is_draft
            db.flush()

            if timetable.is_published:
                search_index.add_timetable(build_index_snapshot(timetable))
                if previous_snapshot is None:
                    repository.compensate_on_rollback(partial(search_index.remove_timetable, timetable.id))
                else:
                    repository.compensate_on_rollback(partial(search_index.add_timetable, previous_snapshot))
                log_activity(db, user=actor, action="timetable.publish", timetable_id=timetable.id)
            elif previous_snapshot is not None:
                search_index.remove_timetable(timetable.id)
                repository.compensate_on_rollback(partial(search_index.add_timetable, previous_snapshot))
                log_activity(db, user=actor, action="timetable.unpublish", timetable_id=timetable.id)
            else:
                log_activity(db, user=actor, action="timetable.edit", timetable_id=timetable.id)
    db.refresh(timetable)
    logger.info(
        "Timetable edited | timetable_id=%s | private=%s | draft=%s",
        timetable.id,
        timetable.private,
        timetable.draft,
    )
    return timetable


def delete_timetable(db: Session, search_index: SearchIndexClient, *, timetable_id: int, actor: User) -> None:
    settings = get_settings()
    repository = TimetableRepository(db)
    with timetable_locks.hold(timetable_id, timeout=settings.timetable_lock_timeout_seconds):
        with repository.transaction("delete timetable"):
            timetable = repository.get_owned(timetable_id, actor, for_update=True)
            previous_snapshot = build_index_snapshot(timetable) if timetable.is_published else None
            db.delete(timetable)
            db.flush()
            search_index.remove_timetable(timetable_id)
            if previous_snapshot is not None:
                repository.compensate_on_rollback(partial(search_index.add_timetable, previous_snapshot))
            log_activity(db, user=actor, action="timetable.delete", timetable_id=timetable_id)
    logger.info("Timetable deleted | timetable_id=%s | author_id=%s", timetable_id, actor.id)


def archive_timetable(db: Session, search_index: SearchIndexClient, *, timetable_id: int) -> Timetable:
    """Freeze a timetable at term roll-over; archived is terminal."""
    settings = get_settings()
    repository = TimetableRepository(db)
    with timetable_locks.hold(timetable_id, timeout=settings.timetable_lock_timeout_seconds):
        with repository.transaction("archive timetable"):
            timetable = repository.get(timetable_id, for_update=True)
            if timetable is None:
                raise ResourceNotFoundError("timetable", timetable_id)
            if timetable.archived:
                return timetable
            previous_snapshot = build_index_snapshot(timetable) if timetable.is_published else None
            timetable.archived = True
            timetable.draft = False
            db.flush()
            if previous_snapshot is not None:
                search_index.remove_timetable(timetable.id)
                repository.compensate_on_rollback(partial(search_index.add_timetable, previous_snapshot))
            log_activity(db, user=None, action="timetable.archive", timetable_id=timetable.id)
    db.refresh(timetable)
    logger.info("Timetable archived | timetable_id=%s", timetable.id)
    return timetable
