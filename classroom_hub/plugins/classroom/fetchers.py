"""
Course and coursework fetchers: turn backend dicts into Course / CourseworkItem tuples.
Errors from the backend (InvalidToken, UpstreamUnavailable, CourseNotFound) propagate.
"""
import logging
from typing import Any, Dict, List, Optional

from .backends.base import ClassroomBackend, Course, CourseworkItem
from .due_dates import normalize_due_date

ACTIVE = "ACTIVE"


def _text(value: Any, default: Optional[str] = None) -> Optional[str]:
    """Upstream strings may be null or absent; anything else is stringified."""
    if value is None or value == "":
        return default
    return str(value)


def _points(value: Any) -> Optional[float]:
    try:
        return None if value is None else float(value)
    except (TypeError, ValueError):
        return None


def _materials(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [m for m in value if isinstance(m, dict)]


def course_from_dict(data: Dict[str, Any]) -> Course:
    return Course(
        id=str(data.get("id")),
        name=_text(data.get("name"), "Unknown"),
        state=_text(data.get("courseState"), ACTIVE),
        section=_text(data.get("section")),
        alternate_link=_text(data.get("alternateLink")),
    )


def coursework_from_dict(data: Dict[str, Any], course_id: str) -> CourseworkItem:
    return CourseworkItem(
        id=str(data.get("id")),
        title=_text(data.get("title"), "Assignment"),
        description=_text(data.get("description"), ""),
        course_id=_text(data.get("courseId"), str(course_id)),
        due_date=normalize_due_date(data.get("dueDate"), data.get("dueTime")),
        creation_time=_text(data.get("creationTime")),
        update_time=_text(data.get("updateTime")),
        max_points=_points(data.get("maxPoints")),
        work_type=_text(data.get("workType"), "ASSIGNMENT"),
        state=_text(data.get("state"), "PUBLISHED"),
        alternate_link=_text(data.get("alternateLink")),
        materials=_materials(data.get("materials")),
    )


class CourseFetcher:
    """Lists the active courses visible to the token's owner."""

    def __init__(self, backend: ClassroomBackend, logger: Optional[logging.Logger] = None):
        self.backend = backend
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def list_active_courses(self, token: str) -> List[Course]:
        courses = []
        for data in self.backend.list_courses(token):
            if not data.get("id"):
                continue
            course = course_from_dict(data)
            if course.state != ACTIVE:
                self.logger.debug(f"Skipping course {course.id} in state {course.state}")
                continue
            courses.append(course)
        self.logger.debug(f"Listed {len(courses)} active course(s)")
        return courses


class CourseworkFetcher:
    """Lists published and draft coursework of one course."""

    def __init__(self, backend: ClassroomBackend, logger: Optional[logging.Logger] = None):
        self.backend = backend
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def list_coursework(self, token: str, course_id: str) -> List[CourseworkItem]:
        items = [
            coursework_from_dict(data, course_id)
            for data in self.backend.list_coursework(token, course_id)
            if data.get("id")
        ]
        self.logger.debug(f"Course {course_id}: {len(items)} coursework item(s)")
        return items
