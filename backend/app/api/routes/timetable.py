from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, get_search_index
from app.models.user import User
from app.schemas.timetable import MessageOut, SectionChangeRequest, TimetableMetadataUpdate, TimetableOut
from app.services import lifecycle, section_mutation
from app.services.search_index import SearchIndexClient
from app.services.timetable_repository import TimetableRepository

router = APIRouter()


@router.get("/", response_model=list[TimetableOut])
def list_my_timetables(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableOut]:
    return TimetableRepository(db).list_for_author(current_user)


@router.post("/", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def create_timetable(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return lifecycle.create_timetable(db, author=current_user)


@router.get("/{timetable_id}", response_model=TimetableOut)
def get_timetable(
    timetable_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return TimetableRepository(db).get_visible(timetable_id, current_user)


@router.post("/{timetable_id}/edit", response_model=TimetableOut)
def edit_timetable_metadata(
    timetable_id: int,
    payload: TimetableMetadataUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    search_index: SearchIndexClient = Depends(get_search_index),
) -> TimetableOut:
    return lifecycle.update_metadata(
        db,
        search_index,
        timetable_id=timetable_id,
        actor=current_user,
        name=payload.name,
        is_private=payload.is_private,
        is_draft=payload.is_draft,
    )


@router.post("/{timetable_id}/add", response_model=TimetableOut)
def add_section(
    timetable_id: int,
    payload: SectionChangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return section_mutation.add_section(
        db,
        timetable_id=timetable_id,
        section_id=payload.section_id,
        actor=current_user,
    )


@router.post("/{timetable_id}/remove", response_model=TimetableOut)
def remove_section(
    timetable_id: int,
    payload: SectionChangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    search_index: SearchIndexClient = Depends(get_search_index),
) -> TimetableOut:
    return section_mutation.remove_section(
        db,
        search_index,
        timetable_id=timetable_id,
        section_id=payload.section_id,
        actor=current_user,
    )


@router.post("/{timetable_id}/copy", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def copy_timetable(
    timetable_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return lifecycle.copy_timetable(db, source_id=timetable_id, actor=current_user)


@router.post("/{timetable_id}/delete", response_model=MessageOut)
def delete_timetable(
    timetable_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    search_index: SearchIndexClient = Depends(get_search_index),
) -> MessageOut:
    lifecycle.delete_timetable(db, search_index, timetable_id=timetable_id, actor=current_user)
    return MessageOut(message="timetable deleted")
