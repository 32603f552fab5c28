from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.section import SectionType


class SectionOut(BaseModel):
    id: str
    course_id: str = Field(alias="courseId")
    type: SectionType
    number: int
    instructors: list[str] = Field(default_factory=list)
    room_time: list[str] = Field(default_factory=list, alias="roomTime")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class CourseOut(BaseModel):
    id: str
    code: str
    name: str
    archived: bool
    midsem_start_time: datetime | None = Field(default=None, alias="midsemStartTime")
    midsem_end_time: datetime | None = Field(default=None, alias="midsemEndTime")
    compre_start_time: datetime | None = Field(default=None, alias="compreStartTime")
    compre_end_time: datetime | None = Field(default=None, alias="compreEndTime")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class CourseWithSectionsOut(CourseOut):
    sections: list[SectionOut] = Field(default_factory=list)
