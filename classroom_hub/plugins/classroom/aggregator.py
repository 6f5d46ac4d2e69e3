"""
Aggregation orchestrator: token -> active courses -> per-course coursework and
submission status -> one ordered list of AggregatedAssignment.

Only the token and the course listing can fail an aggregation. Everything done
for a single course is isolated: an error there drops that course's
assignments, logs a warning, and the run carries on with the next course.

Upstream calls fan out on a bounded thread pool in two flat phases (coursework
per course, then status per item) so no pool task ever waits on another. Output
order is fixed by course order and coursework order, never by completion order.
"""
import logging
import threading
from collections import namedtuple
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from enum import Enum
from typing import List, Optional

from classroom_hub.core.errors import AggregationCancelled, InvalidToken, UpstreamUnavailable

from .backends.base import (
    AggregatedAssignment,
    ClassroomBackend,
    Course,
    SELF_USER_ID,
    build_assignment,
)
from .fetchers import CourseFetcher, CourseworkFetcher
from .status import SubmissionStatusResolver

MAX_WORKERS_CAP = 8
CANCEL_POLL_SECONDS = 0.1


class AggregationState(str, Enum):
    IDLE = "IDLE"
    TOKEN_RESOLVED = "TOKEN_RESOLVED"
    COURSES_LISTED = "COURSES_LISTED"
    PER_COURSE_PROCESSING = "PER_COURSE_PROCESSING"
    MERGED = "MERGED"
    DONE = "DONE"
    FAILED = "FAILED"


SkippedCourse = namedtuple("SkippedCourse", ["course_id", "course_name", "error"])


class AggregationResult(namedtuple("AggregationResult", ["assignments", "skipped_courses", "state"])):
    __slots__ = ()

    @property
    def total_count(self) -> int:
        return len(self.assignments)

    @property
    def solved_count(self) -> int:
        return sum(1 for a in self.assignments if a.is_solved)

    @property
    def unsolved_count(self) -> int:
        return self.total_count - self.solved_count


class _Run:
    """Per-call state; the aggregator itself holds no request data."""

    def __init__(self, user_id: str, logger: logging.Logger):
        self.user_id = user_id
        self.logger = logger
        self.state = AggregationState.IDLE
        self.skipped: List[SkippedCourse] = []

    def advance(self, state: AggregationState) -> None:
        self.logger.debug(f"Aggregation for user {self.user_id}: {self.state.value} -> {state.value}")
        self.state = state


class AssignmentAggregator:
    def __init__(
        self,
        token_provider,
        backend: ClassroomBackend,
        max_workers: int = 4,
        logger: Optional[logging.Logger] = None,
    ):
        self.token_provider = token_provider
        self.backend = backend
        self.max_workers = max(1, min(int(max_workers), MAX_WORKERS_CAP))
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.course_fetcher = CourseFetcher(backend, logger=self.logger)
        self.coursework_fetcher = CourseworkFetcher(backend, logger=self.logger)
        self.status_resolver = SubmissionStatusResolver(backend, logger=self.logger)

    def _resolve_token(self, run: _Run) -> str:
        try:
            token = self.token_provider.get_valid_token(run.user_id)
        except InvalidToken:
            run.advance(AggregationState.FAILED)
            raise
        if not token:
            run.advance(AggregationState.FAILED)
            raise InvalidToken("Classroom account not linked")
        run.advance(AggregationState.TOKEN_RESOLVED)
        return token

    def _list_courses(self, run: _Run, token: str) -> List[Course]:
        try:
            courses = self.course_fetcher.list_active_courses(token)
        except (InvalidToken, UpstreamUnavailable):
            run.advance(AggregationState.FAILED)
            raise
        except Exception as e:
            run.advance(AggregationState.FAILED)
            raise UpstreamUnavailable(f"Failed to list courses: {e}", cause=e) from e
        run.advance(AggregationState.COURSES_LISTED)
        return courses

    def _resolve_user_id(self, token: str) -> str:
        try:
            profile = self.backend.get_user_profile(token)
            user_id = profile.get("id")
            if user_id:
                return str(user_id)
        except Exception as e:
            self.logger.warning(f"Could not fetch user profile, using '{SELF_USER_ID}' as user id: {e}")
        return SELF_USER_ID

    @staticmethod
    def _wait(future: Future, cancel_event: Optional[threading.Event]):
        if cancel_event is None:
            return future.result()
        while True:
            if cancel_event.is_set():
                raise AggregationCancelled("Aggregation cancelled by caller")
            try:
                return future.result(timeout=CANCEL_POLL_SECONDS)
            except FutureTimeout:
                continue

    def _skip(self, run: _Run, course: Course, error: BaseException) -> None:
        self.logger.warning(f"Skipping course {course.name} ({course.id}) due to error: {error}")
        run.skipped.append(SkippedCourse(course.id, course.name, str(error)))

    def list_courses_for_user(self, user_id: str) -> List[Course]:
        """Token resolution and course listing only. Raises InvalidToken / UpstreamUnavailable."""
        run = _Run(user_id, self.logger)
        token = self._resolve_token(run)
        courses = self._list_courses(run, token)
        run.advance(AggregationState.DONE)
        return courses

    def aggregate(self, user_id: str, cancel_event: Optional[threading.Event] = None) -> AggregationResult:
        """
        Build the user's annotated assignment list.

        Raises InvalidToken before any upstream call when the account is not
        linked or its token cannot be renewed, UpstreamUnavailable when the
        course list cannot be fetched, and AggregationCancelled when
        cancel_event is set mid-run. Per-course failures never raise.
        """
        run = _Run(user_id, self.logger)
        token = self._resolve_token(run)
        courses = self._list_courses(run, token)
        self.logger.info(f"Aggregating assignments for user {user_id} across {len(courses)} course(s)")
        external_user_id = self._resolve_user_id(token)

        run.advance(AggregationState.PER_COURSE_PROCESSING)
        assignments: List[AggregatedAssignment] = []
        if courses:
            assignments = self._process_courses(run, token, external_user_id, courses, cancel_event)
        run.advance(AggregationState.MERGED)

        result = AggregationResult(assignments, list(run.skipped), AggregationState.DONE)
        run.advance(AggregationState.DONE)
        self.logger.info(
            f"Aggregated {result.total_count} assignment(s) for user {user_id}: "
            f"{result.solved_count} solved, {result.unsolved_count} unsolved, "
            f"{len(result.skipped_courses)} course(s) skipped"
        )
        return result

    def _process_courses(
        self,
        run: _Run,
        token: str,
        external_user_id: str,
        courses: List[Course],
        cancel_event: Optional[threading.Event],
    ) -> List[AggregatedAssignment]:
        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="classroom-aggregate")
        cancelled = False
        try:
            coursework_futures = [
                pool.submit(self.coursework_fetcher.list_coursework, token, course.id)
                for course in courses
            ]

            coursework = []
            for course, future in zip(courses, coursework_futures):
                try:
                    coursework.append(self._wait(future, cancel_event))
                except AggregationCancelled:
                    raise
                except Exception as e:
                    self._skip(run, course, e)
                    coursework.append(None)

            status_futures = [
                None if items is None else [
                    pool.submit(
                        self.status_resolver.resolve_status,
                        token, course.id, item.id, external_user_id,
                    )
                    for item in items
                ]
                for course, items in zip(courses, coursework)
            ]

            assignments: List[AggregatedAssignment] = []
            for course, items, futures in zip(courses, coursework, status_futures):
                if items is None:
                    continue
                try:
                    statuses = [self._wait(f, cancel_event) for f in futures]
                    course_assignments = [
                        build_assignment(item, course.name, status)
                        for item, status in zip(items, statuses)
                    ]
                except AggregationCancelled:
                    raise
                except Exception as e:
                    self._skip(run, course, e)
                    continue
                self.logger.debug(f"Course {course.name} ({course.id}): {len(course_assignments)} assignment(s)")
                assignments.extend(course_assignments)
            return assignments
        except AggregationCancelled:
            cancelled = True
            self.logger.info(f"Aggregation for user {run.user_id} cancelled, abandoning outstanding calls")
            raise
        finally:
            pool.shutdown(wait=not cancelled, cancel_futures=cancelled)
