"""
Value types and the upstream capability interface for classroom backends.
Backends return plain dicts exactly as the classroom service sends them; the
fetchers turn them into the namedtuples below.
"""
from abc import ABC, abstractmethod
from collections import namedtuple
from enum import Enum
from typing import Any, Dict, List

# Sentinel user id understood by the classroom service as "the token's owner".
SELF_USER_ID = "me"


class SubmissionState(str, Enum):
    NEW = "NEW"
    CREATED = "CREATED"
    TURNED_IN = "TURNED_IN"
    RETURNED = "RETURNED"
    RECLAIMED_BY_STUDENT = "RECLAIMED_BY_STUDENT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "SubmissionState":
        """Map an upstream state string to the enum; anything unrecognised is UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


SOLVED_STATES = frozenset({SubmissionState.TURNED_IN, SubmissionState.RETURNED})


Course = namedtuple(
    "Course",
    [
        "id",
        "name",
        "state",           # "ACTIVE", "ARCHIVED", ...
        "section",         # str or None
        "alternate_link",  # str or None
    ],
    defaults=(None, None),
)

CourseworkItem = namedtuple(
    "CourseworkItem",
    [
        "id",
        "title",
        "description",
        "course_id",
        "due_date",        # "YYYY-MM-DDTHH:MM:SS" or None
        "creation_time",
        "update_time",
        "max_points",      # float or None
        "work_type",
        "state",           # "PUBLISHED" | "DRAFT"
        "alternate_link",
        "materials",       # list of upstream material dicts
    ],
)

SubmissionStatus = namedtuple(
    "SubmissionStatus",
    [
        "is_solved",
        "state",           # SubmissionState
        "submission_id",
        "update_time",
    ],
    defaults=(None, None),
)

# CourseworkItem fields, then course_name, then the SubmissionStatus fields
# (prefixed where they would clash with coursework fields).
AggregatedAssignment = namedtuple(
    "AggregatedAssignment",
    list(CourseworkItem._fields)
    + ["course_name", "is_solved", "submission_state", "submission_id", "submission_update_time"],
)


def status_for_state(state: SubmissionState, submission_id=None, update_time=None) -> SubmissionStatus:
    """Build a SubmissionStatus whose is_solved flag is derived from the state."""
    return SubmissionStatus(
        is_solved=state in SOLVED_STATES,
        state=state,
        submission_id=submission_id,
        update_time=update_time,
    )


def build_assignment(item: CourseworkItem, course_name: str, status: SubmissionStatus) -> AggregatedAssignment:
    return AggregatedAssignment(*item, course_name, *status)


class ClassroomBackend(ABC):
    """Read-only capability set of the classroom service. Every call takes the access token explicitly."""

    @abstractmethod
    def list_courses(self, token: str) -> List[Dict[str, Any]]:
        """Return active course dicts in upstream order."""

    @abstractmethod
    def list_coursework(self, token: str, course_id: str) -> List[Dict[str, Any]]:
        """Return published and draft coursework dicts for one course, in upstream order."""

    @abstractmethod
    def list_submissions(
        self, token: str, course_id: str, coursework_id: str, user_id: str
    ) -> List[Dict[str, Any]]:
        """Return the given user's submission dicts for one coursework item."""

    @abstractmethod
    def get_user_profile(self, token: str) -> Dict[str, Any]:
        """Return {id, email, name} for the token's owner."""
