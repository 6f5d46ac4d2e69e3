"""
Submission status resolver. Never raises: any failure becomes state UNKNOWN, unsolved.
"""
import logging
from typing import Optional

from .backends.base import (
    ClassroomBackend,
    SubmissionState,
    SubmissionStatus,
    status_for_state,
)

NOT_STARTED = status_for_state(SubmissionState.NEW)
UNRESOLVED = status_for_state(SubmissionState.UNKNOWN)


class SubmissionStatusResolver:
    def __init__(self, backend: ClassroomBackend, logger: Optional[logging.Logger] = None):
        self.backend = backend
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def resolve_status(self, token: str, course_id: str, coursework_id: str, user_id: str) -> SubmissionStatus:
        """
        Return the user's status for one coursework item.

        No submission record means "not started" (NEW). With several records the
        first one upstream returns is used; upstream does not document an order.
        """
        try:
            submissions = self.backend.list_submissions(token, course_id, coursework_id, user_id)
            if not submissions:
                return NOT_STARTED

            submission = submissions[0]
            raw_state = submission.get("state")
            state = SubmissionState.parse(raw_state)
            if state is SubmissionState.UNKNOWN:
                self.logger.debug(f"Unmapped submission state {raw_state!r} for coursework {coursework_id}")
            submission_id = submission.get("id")
            update_time = submission.get("updateTime")
            return status_for_state(
                state,
                submission_id=None if submission_id is None else str(submission_id),
                update_time=None if update_time is None else str(update_time),
            )
        except Exception as e:
            self.logger.warning(
                f"Could not resolve submission for course {course_id}, coursework {coursework_id}: {e}"
            )
            return UNRESOLVED
