from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.db.base import Base
from app.db.session import engine as default_engine
import app.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "batch", "degrees"},
    "courses": {
        "id",
        "code",
        "archived",
        "midsem_start_time",
        "midsem_end_time",
        "compre_start_time",
        "compre_end_time",
    },
    "sections": {"id", "course_id", "type", "number", "room_time"},
    "timetables": {
        "id",
        "author_id",
        "private",
        "draft",
        "archived",
        "timings",
        "exam_times",
        "warnings",
    },
    "timetable_sections": {"timetable_id", "section_id"},
}


def missing_schema_columns(engine: Engine) -> tuple[list[str], dict[str, list[str]]]:
    """Return the missing tables and the missing columns of existing tables."""
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing_tables.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(columns - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_schema(engine: Engine | None = None) -> None:
    target = engine or default_engine
    if get_settings().auto_create_schema:
        Base.metadata.create_all(bind=target)
        return

    try:
        missing_tables, missing_columns = missing_schema_columns(target)
    except SQLAlchemyError:
        logger.exception("Database schema check failed at startup")
        return
    if missing_tables or missing_columns:
        logger.warning(
            "Database schema is behind the models | missing_tables=%s | missing_columns=%s. "
            "Run `alembic upgrade head`.",
            missing_tables,
            missing_columns,
        )
