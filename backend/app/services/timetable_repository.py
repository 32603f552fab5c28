from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AppError, ForbiddenError, InternalError, ResourceNotFoundError
from app.models.section import Section
from app.models.timetable import Timetable
from app.models.user import User
from app.services.encodings import (
    ExamInterval,
    SlotEntry,
    WarningEntry,
    encode_exam,
    encode_slot,
    encode_warning,
)

logger = logging.getLogger(__name__)


class TimetableRepository:
    """Persistence adapter for timetables.

    Loads timetables with the visibility and ownership rules applied, and
    writes the section membership and encoded list fields of a mutation as a
    single transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self._compensations: list[Callable[[], None]] = []

    def get(self, timetable_id: int, *, for_update: bool = False) -> Timetable | None:
        try:
            if for_update:
                return self.db.get(Timetable, timetable_id, with_for_update=True, populate_existing=True)
            return self.db.get(Timetable, timetable_id)
        except SQLAlchemyError as exc:
            logger.exception("Error while querying timetable %s", timetable_id)
            raise InternalError() from exc

    def get_owned(self, timetable_id: int, actor: User, *, for_update: bool = False) -> Timetable:
        timetable = self.get(timetable_id, for_update=for_update)
        if timetable is None:
            raise ResourceNotFoundError("timetable", timetable_id)
        if timetable.author_id != actor.id:
            raise ForbiddenError()
        return timetable

    def get_visible(self, timetable_id: int, viewer: User) -> Timetable:
        # Private timetables look absent to everyone but their author.
        timetable = self.get(timetable_id)
        if timetable is None or (timetable.private and timetable.author_id != viewer.id):
            raise ResourceNotFoundError("timetable", timetable_id)
        return timetable

    def list_for_author(self, author: User) -> list[Timetable]:
        statement = select(Timetable).where(Timetable.author_id == author.id).order_by(Timetable.id)
        try:
            return list(self.db.execute(statement).scalars())
        except SQLAlchemyError as exc:
            logger.exception("Error while listing timetables of user %s", author.id)
            raise InternalError() from exc

    def apply_section_change(
        self,
        timetable: Timetable,
        *,
        sections: Sequence[Section],
        slots: Sequence[SlotEntry],
        warnings: Sequence[WarningEntry],
        exams: Sequence[ExamInterval] | None = None,
    ) -> None:
        """Stage the fields a section mutation touches; ``exams=None`` leaves exam times as they are."""
        timetable.sections = list(sections)
        timetable.timings = [encode_slot(slot) for slot in slots]
        timetable.warnings = [encode_warning(entry) for entry in warnings]
        if exams is not None:
            timetable.exam_times = [encode_exam(interval) for interval in exams]

    def compensate_on_rollback(self, action: Callable[[], None]) -> None:
        """Register an undo for an external call made inside the open transaction.

        Search index calls happen before the commit so that an index failure
        keeps the database unchanged; if the commit then fails, the registered
        actions run in reverse order to put the index back.
        """
        self._compensations.append(action)

    def _run_compensations(self, description: str) -> None:
        for action in reversed(self._compensations):
            try:
                action()
            except AppError:
                logger.exception("Compensating search index call failed | %s", description)

    @contextmanager
    def transaction(self, description: str) -> Iterator[None]:
        """Commit everything staged in the block, or roll all of it back."""
        self._compensations = []
        try:
            yield
            self.db.commit()
        except AppError:
            self.db.rollback()
            self._run_compensations(description)
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Timetable transaction failed | %s", description)
            self._run_compensations(description)
            raise InternalError() from exc
        finally:
            self._compensations = []
