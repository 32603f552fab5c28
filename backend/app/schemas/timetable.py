from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.course import SectionOut


class TimetableOut(BaseModel):
    id: int
    author_id: str = Field(alias="authorId")
    name: str
    degrees: list[str] = Field(default_factory=list)
    private: bool
    draft: bool
    archived: bool
    acad_year: int = Field(alias="acadYear")
    year: int
    semester: int
    sections: list[SectionOut] = Field(default_factory=list)
    timings: list[str] = Field(default_factory=list)
    exam_times: list[str] = Field(default_factory=list, alias="examTimes")
    warnings: list[str] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SectionChangeRequest(BaseModel):
    section_id: str = Field(min_length=1, max_length=36, alias="sectionId")

    model_config = ConfigDict(populate_by_name=True)


class TimetableMetadataUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    is_private: bool = Field(alias="isPrivate")
    is_draft: bool = Field(alias="isDraft")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("timetable name must not be blank")
        return stripped


class MessageOut(BaseModel):
    message: str
