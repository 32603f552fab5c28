from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.user import User
from app.schemas.course import CourseOut, CourseWithSectionsOut
from app.services.catalog import CatalogService

router = APIRouter()


@router.get("/", response_model=list[CourseOut])
def list_courses(
    include_archived: bool = Query(default=False, alias="includeArchived"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[CourseOut]:
    return CatalogService(db).list_courses(include_archived=include_archived)


@router.get("/{course_id}", response_model=CourseWithSectionsOut)
def get_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CourseWithSectionsOut:
    return CatalogService(db).get_course(course_id)
