import itertools
import os
from datetime import datetime, timezone

# The app builds its engine at import time; keep it off the Postgres default.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_search_index
from app.core.exceptions import SearchIndexError
from app.core.security import create_access_token
from app.db.base import Base
from app.main import app
from app.models import Course, Section, SectionType, User
from app.services.timetable_locks import timetable_locks


class RecordingSearchIndex:
    """Stands in for the search service; records calls and can be told to fail."""

    enabled = True

    def __init__(self):
        self.added = []
        self.removed = []
        self.fail = False

    def add_timetable(self, snapshot):
        if self.fail:
            raise SearchIndexError("Error while adding timetable to search service")
        self.added.append(snapshot)

    def remove_timetable(self, timetable_id):
        if self.fail:
            raise SearchIndexError("Error while removing timetable from search service")
        self.removed.append(timetable_id)


def utc(day, hour, minute=0):
    return datetime(2024, 3, day, hour, minute, tzinfo=timezone.utc)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_timetable_locks():
    timetable_locks.clear()
    yield
    timetable_locks.clear()


@pytest.fixture()
def search_index():
    return RecordingSearchIndex()


@pytest.fixture()
def client(session_factory, search_index):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_search_index] = lambda: search_index

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = itertools.count(1)

    def _make_user(name="Student", batch=2022, degrees=("A7",), is_active=True):
        number = next(counter)
        user = User(
            name=f"{name} {number}",
            email=f"student{number}@example.com",
            batch=batch,
            degrees=list(degrees),
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_course(db):
    def _make_course(code, *, midsem=None, compre=None, archived=False):
        course = Course(
            code=code,
            name=f"{code} Course",
            archived=archived,
            midsem_start_time=midsem[0] if midsem else None,
            midsem_end_time=midsem[1] if midsem else None,
            compre_start_time=compre[0] if compre else None,
            compre_end_time=compre[1] if compre else None,
        )
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return _make_course


@pytest.fixture()
def make_section(db):
    def _make_section(course, section_type, room_time, number=1):
        section = Section(
            course_id=course.id,
            type=SectionType(section_type),
            number=number,
            instructors=["Instructor"],
            room_time=list(room_time),
        )
        db.add(section)
        db.commit()
        db.refresh(section)
        return section

    return _make_section
