from .base import (
    AggregatedAssignment,
    ClassroomBackend,
    Course,
    CourseworkItem,
    SELF_USER_ID,
    SubmissionState,
    SubmissionStatus,
)
from .google_api import GoogleClassroomBackend

__all__ = [
    "AggregatedAssignment",
    "ClassroomBackend",
    "Course",
    "CourseworkItem",
    "GoogleClassroomBackend",
    "SELF_USER_ID",
    "SubmissionState",
    "SubmissionStatus",
]

_BACKENDS = {
    "google": GoogleClassroomBackend,
}


def get_backend(backend_type: str, config: dict, logger=None):
    """Factory: return backend instance for given type, or None if unknown."""
    cls = _BACKENDS.get((backend_type or "google").lower())
    if not cls:
        return None
    return cls(
        request_timeout=float(config.get("request_timeout", 10)),
        num_retries=int(config.get("num_retries", 0)),
        logger=logger,
    )
