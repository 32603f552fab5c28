import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base


class SectionType(str, Enum):
    # Declaration order is the order missing types are listed in warnings.
    L = "L"
    P = "P"
    T = "T"


class Section(Base):
    __tablename__ = "sections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[SectionType] = mapped_column(SAEnum(SectionType, name="section_type"), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    instructors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # One "ROOM:AUX:DAY:HOUR" entry per weekly occurrence.
    room_time: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    course = relationship("Course", back_populates="sections")
