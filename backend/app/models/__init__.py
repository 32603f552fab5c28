from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.course import Course  # noqa: F401
from app.models.section import Section, SectionType  # noqa: F401
from app.models.timetable import DEFAULT_TIMETABLE_NAME, Timetable, timetable_sections  # noqa: F401
from app.models.user import User  # noqa: F401
