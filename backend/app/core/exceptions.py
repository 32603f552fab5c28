class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is absent or not visible to the caller."""
    def __init__(self, resource_type: str, resource_id: object = None, message: str = None):
        if message is None:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            status_code=404,
            details={"resource": resource_type, "id": resource_id} if resource_id is not None else {"resource": resource_type},
        )


class ForbiddenError(AppError):
    """Raised when the caller is not allowed to mutate an existing resource."""
    def __init__(self, message: str = "user does not own timetable"):
        super().__init__(message, status_code=403)


class InvalidRequestError(AppError):
    """Raised for well-formed requests whose fields contradict each other."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class ConflictError(AppError):
    """Raised when a request is refused because of the timetable's current state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class TimetableStateError(ConflictError):
    """Raised when a lifecycle flag (archived, draft) forbids the operation."""


class ClassHourClashError(ConflictError):
    def __init__(self, course: str, slot: str):
        super().__init__(
            f"section clashes with {course}",
            details={"reason": "class_hour_clash", "course": course, "slot": slot},
        )


class ExamHourClashError(ConflictError):
    def __init__(self, course: str, exam: str):
        super().__init__(
            f"course's exam clashes with {course}'s {exam}",
            details={"reason": "exam_hour_clash", "course": course, "exam": exam},
        )


class DuplicateSectionTypeError(ConflictError):
    def __init__(self, course: str, section_type: str):
        super().__init__(
            f"can't have multiple sections of type {section_type}",
            details={"reason": "duplicate_section_type", "course": course, "type": section_type},
        )


class UpstreamError(AppError):
    """Raised when an external collaborator fails."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=502, details=details)


class SearchIndexError(UpstreamError):
    pass


class InternalError(AppError):
    """Raised when persistence or catalog lookups fail."""
    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message, status_code=500)
