from __future__ import annotations

from collections.abc import Iterable, Sequence

from app.models.section import SectionType
from app.services.encodings import WarningEntry


def update_section_warnings(
    course_code: str,
    section_type: SectionType | str,
    offered_types: Iterable[SectionType | str],
    adding: bool,
    warnings: Sequence[WarningEntry],
    *,
    course_remains: bool = True,
) -> list[WarningEntry]:
    """Return ``warnings`` updated for one section of ``course_code`` being added or removed.

    Only the touched course's entry changes; it keeps its position, and a new
    entry goes to the end. ``course_remains`` tells a removal whether any other
    section of the course is still selected: a course with nothing selected
    carries no warning.
    """
    changed = SectionType(section_type)
    index = next((i for i, entry in enumerate(warnings) if entry.course_code == course_code), None)
    existing = warnings[index] if index is not None else None

    if adding:
        missing = set(existing.missing) if existing is not None else {SectionType(item) for item in offered_types}
        missing.discard(changed)
    elif not course_remains:
        missing = set()
    else:
        missing = set(existing.missing) if existing is not None else set()
        missing.add(changed)

    updated = list(warnings)
    if not missing:
        if index is not None:
            del updated[index]
        return updated

    entry = WarningEntry(course_code=course_code, missing=tuple(item for item in SectionType if item in missing))
    if index is None:
        updated.append(entry)
    else:
        updated[index] = entry
    return updated
