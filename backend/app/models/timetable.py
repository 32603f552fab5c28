from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base

DEFAULT_TIMETABLE_NAME = "Untitled Timetable"

timetable_sections = Table(
    "timetable_sections",
    Base.metadata,
    Column("timetable_id", Integer, ForeignKey("timetables.id", ondelete="CASCADE"), primary_key=True),
    Column("section_id", String(36), ForeignKey("sections.id", ondelete="CASCADE"), primary_key=True),
)


class Timetable(Base):
    __tablename__ = "timetables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, default=DEFAULT_TIMETABLE_NAME)
    degrees: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    draft: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    acad_year: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)

    # Persisted encodings; see app.services.encodings for the formats.
    timings: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    exam_times: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    warnings: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_updated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    author = relationship("User", back_populates="timetables")
    sections = relationship("Section", secondary=timetable_sections, lazy="selectin")

    @property
    def is_published(self) -> bool:
        return not self.draft and not self.private
