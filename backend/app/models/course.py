import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Null when the course has no sit-down exam of that kind.
    midsem_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    midsem_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    compre_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    compre_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    sections = relationship("Section", back_populates="course", order_by="Section.number")
