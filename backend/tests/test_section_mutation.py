from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    ClassHourClashError,
    DuplicateSectionTypeError,
    ExamHourClashError,
    ForbiddenError,
    InternalError,
    ResourceNotFoundError,
    TimetableStateError,
)
from app.models.timetable import Timetable
from app.services import lifecycle, section_mutation
from app.services.section_mutation import add_section, remove_section
from app.services.timetable_locks import TimetableBusyError, timetable_locks

from conftest import utc


@pytest.fixture()
def student(make_user):
    return make_user()


@pytest.fixture()
def timetable(db, student):
    return lifecycle.create_timetable(db, author=student)


@pytest.fixture()
def cs_f211(make_course, make_section):
    course = make_course("CS F211", midsem=(utc(12, 9), utc(12, 10, 30)), compre=(utc(28, 14), utc(28, 17)))
    return SimpleNamespace(
        course=course,
        lecture=make_section(course, "L", ["F102:X:M:2", "F102:X:W:2", "F102:X:F:2"]),
        lecture_2=make_section(course, "L", ["F104:X:T:4", "F104:X:Th:4"], number=2),
        practical=make_section(course, "P", ["D311:X:T:8", "D311:X:T:9"]),
        tutorial=make_section(course, "T", ["F105:X:Th:5"]),
    )


@pytest.fixture()
def math_f111(make_course, make_section):
    course = make_course("MATH F111", midsem=(utc(10, 10), utc(10, 12)))
    return SimpleNamespace(
        course=course,
        lecture=make_section(course, "L", ["LTC:X:M:2", "LTC:X:W:3"]),
        lecture_late=make_section(course, "L", ["LTC:X:S:6"], number=2),
    )


def _state(timetable):
    return (
        sorted(section.id for section in timetable.sections),
        sorted(timetable.timings),
        sorted(timetable.exam_times),
        sorted(timetable.warnings),
    )


def _add(db, timetable, section, actor):
    return add_section(db, timetable_id=timetable.id, section_id=section.id, actor=actor)


def _remove(db, search_index, timetable, section, actor):
    return remove_section(db, search_index, timetable_id=timetable.id, section_id=section.id, actor=actor)


def test_adding_sections_tracks_timings_exams_and_warnings(db, timetable, student, cs_f211):
    updated = _add(db, timetable, cs_f211.lecture, student)

    assert [section.id for section in updated.sections] == [cs_f211.lecture.id]
    assert updated.timings == ["CS F211:M2", "CS F211:W2", "CS F211:F2"]
    assert updated.exam_times == [
        "CS F211|MIDSEM|2024-03-12T09:00:00.000Z|2024-03-12T10:30:00.000Z",
        "CS F211|COMPRE|2024-03-28T14:00:00.000Z|2024-03-28T17:00:00.000Z",
    ]
    assert updated.warnings == ["CS F211:PT"]

    updated = _add(db, timetable, cs_f211.practical, student)
    assert updated.warnings == ["CS F211:T"]
    assert len(updated.exam_times) == 2

    updated = _add(db, timetable, cs_f211.tutorial, student)
    assert updated.warnings == []
    assert len(updated.timings) == 6


def test_second_section_of_same_type_is_refused(db, timetable, student, cs_f211):
    _add(db, timetable, cs_f211.lecture, student)
    before = _state(timetable)

    with pytest.raises(DuplicateSectionTypeError) as excinfo:
        _add(db, timetable, cs_f211.lecture_2, student)

    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "can't have multiple sections of type L"
    db.expire_all()
    assert _state(db.get(Timetable, timetable.id)) == before


def test_class_hour_clash_is_refused(db, timetable, student, cs_f211, math_f111):
    _add(db, timetable, cs_f211.lecture, student)

    with pytest.raises(ClassHourClashError) as excinfo:
        _add(db, timetable, math_f111.lecture, student)

    assert excinfo.value.details == {"reason": "class_hour_clash", "course": "CS F211", "slot": "M2"}
    db.expire_all()
    assert [section.id for section in db.get(Timetable, timetable.id).sections] == [cs_f211.lecture.id]


def test_exam_hour_clash_is_refused(db, timetable, student, math_f111, make_course, make_section):
    physics = make_course("PHY F111", midsem=(utc(10, 11), utc(10, 13)))
    physics_lecture = make_section(physics, "L", ["LTC:X:Th:1"])
    _add(db, timetable, math_f111.lecture, student)

    with pytest.raises(ExamHourClashError) as excinfo:
        _add(db, timetable, physics_lecture, student)

    assert excinfo.value.message == "course's exam clashes with MATH F111's midsem"
    assert excinfo.value.details["exam"] == "midsem"


def test_archived_course_is_refused(db, timetable, student, make_course, make_section):
    course = make_course("BITS F110", archived=True)
    section = make_section(course, "L", ["F102:X:M:8"])

    with pytest.raises(TimetableStateError, match="course is archived"):
        _add(db, timetable, section, student)


def test_only_the_author_can_mutate(db, timetable, make_user, cs_f211, search_index):
    intruder = make_user(name="Intruder")

    with pytest.raises(ForbiddenError):
        _add(db, timetable, cs_f211.lecture, intruder)
    with pytest.raises(ForbiddenError):
        _remove(db, search_index, timetable, cs_f211.lecture, intruder)


def test_missing_timetable_or_section_is_not_found(db, timetable, student, cs_f211, search_index):
    with pytest.raises(ResourceNotFoundError, match="timetable not found"):
        add_section(db, timetable_id=timetable.id + 100, section_id=cs_f211.lecture.id, actor=student)
    with pytest.raises(ResourceNotFoundError, match="section not found"):
        add_section(db, timetable_id=timetable.id, section_id="no-such-section", actor=student)
    with pytest.raises(ResourceNotFoundError, match="section not found in timetable"):
        _remove(db, search_index, timetable, cs_f211.lecture, student)


def test_add_then_remove_restores_the_timetable(db, timetable, student, cs_f211, math_f111, search_index):
    _add(db, timetable, math_f111.lecture_late, student)
    before = _state(timetable)

    _add(db, timetable, cs_f211.lecture, student)
    restored = _remove(db, search_index, timetable, cs_f211.lecture, student)

    assert _state(restored) == before
    assert search_index.added == []


def test_exam_times_stay_while_another_section_of_the_course_remains(db, timetable, student, cs_f211, search_index):
    _add(db, timetable, cs_f211.lecture, student)
    _add(db, timetable, cs_f211.practical, student)

    updated = _remove(db, search_index, timetable, cs_f211.practical, student)
    assert len(updated.exam_times) == 2
    assert updated.warnings == ["CS F211:PT"]
    assert updated.timings == ["CS F211:M2", "CS F211:W2", "CS F211:F2"]

    updated = _remove(db, search_index, timetable, cs_f211.lecture, student)
    assert updated.exam_times == []
    assert updated.warnings == []
    assert updated.timings == []


def test_failed_write_rolls_back_every_field(db, timetable, student, cs_f211, monkeypatch):
    def broken_log_activity(*args, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(section_mutation, "log_activity", broken_log_activity)

    with pytest.raises(InternalError):
        _add(db, timetable, cs_f211.lecture, student)

    db.expire_all()
    stored = db.get(Timetable, timetable.id)
    assert _state(stored) == ([], [], [], [])


def test_mutation_waits_for_the_timetable_lock(db, timetable, student, cs_f211, monkeypatch):
    monkeypatch.setattr(section_mutation, "get_settings", lambda: SimpleNamespace(timetable_lock_timeout_seconds=0.01))

    with timetable_locks.hold(timetable.id):
        with pytest.raises(TimetableBusyError):
            _add(db, timetable, cs_f211.lecture, student)

    assert _add(db, timetable, cs_f211.lecture, student).timings


def test_published_timetable_refuses_adds_but_allows_removal(db, timetable, student, cs_f211, search_index):
    for section in (cs_f211.lecture, cs_f211.practical, cs_f211.tutorial):
        _add(db, timetable, section, student)
    lifecycle.update_metadata(
        db,
        search_index,
        timetable_id=timetable.id,
        actor=student,
        name="Second year",
        is_private=False,
        is_draft=False,
    )

    with pytest.raises(TimetableStateError, match="timetable is not a draft"):
        _add(db, timetable, cs_f211.lecture_2, student)

    updated = _remove(db, search_index, timetable, cs_f211.tutorial, student)

    assert updated.warnings == ["CS F211:T"]
    assert len(search_index.added) == 2
    assert search_index.added[-1]["id"] == timetable.id
    assert search_index.added[-1]["warnings"] == ["CS F211:T"]
