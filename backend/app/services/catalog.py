from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InternalError, ResourceNotFoundError
from app.models.course import Course
from app.models.section import Section, SectionType

logger = logging.getLogger(__name__)


class CatalogService:
    """Read-only lookups of courses and sections.

    A missing record raises ``ResourceNotFoundError``; a failing query raises
    ``InternalError`` so callers can tell the two apart.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_section(self, section_id: str) -> Section:
        try:
            section = self.db.get(Section, section_id)
        except SQLAlchemyError as exc:
            logger.exception("Error while querying section %s", section_id)
            raise InternalError() from exc
        if section is None:
            raise ResourceNotFoundError("section", section_id)
        return section

    def get_course(self, course_id: str) -> Course:
        try:
            course = self.db.get(Course, course_id)
        except SQLAlchemyError as exc:
            logger.exception("Error while querying course %s", course_id)
            raise InternalError() from exc
        if course is None:
            raise ResourceNotFoundError("course", course_id)
        return course

    def offered_section_types(self, course_id: str) -> list[SectionType]:
        try:
            rows = self.db.execute(select(Section.type).where(Section.course_id == course_id).distinct()).scalars()
            offered = set(rows)
        except SQLAlchemyError as exc:
            logger.exception("Error while querying section types of course %s", course_id)
            raise InternalError() from exc
        return [item for item in SectionType if item in offered]

    def list_courses(self, *, include_archived: bool = False) -> list[Course]:
        statement = select(Course).order_by(Course.code)
        if not include_archived:
            statement = statement.where(Course.archived.is_(False))
        try:
            return list(self.db.execute(statement).scalars())
        except SQLAlchemyError as exc:
            logger.exception("Error while listing courses")
            raise InternalError() from exc
