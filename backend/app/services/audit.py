from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog
from app.models.user import User


def log_activity(
    db: Session,
    *,
    user: User | None,
    action: str,
    timetable_id: int | None = None,
    details: dict | None = None,
) -> None:
    """Stage an activity row; it commits or rolls back with the caller's transaction."""
    record = ActivityLog(
        user_id=user.id if user is not None else None,
        action=action,
        timetable_id=timetable_id,
        details=details or {},
    )
    db.add(record)
