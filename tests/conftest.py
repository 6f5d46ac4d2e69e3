"""
Shared fixtures: in-memory database, a scriptable classroom backend and token provider.
"""
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from classroom_hub.core import db
from classroom_hub.core.errors import ExchangeFailed, InvalidToken, RefreshFailed
from classroom_hub.plugins.classroom.backends.base import ClassroomBackend
from classroom_hub.plugins.classroom.token_provider import TokenSet


class FakeBackend(ClassroomBackend):
    """
    courses: list of course dicts, or an Exception to raise.
    coursework: course_id -> list of coursework dicts, or an Exception.
    submissions: (course_id, coursework_id) -> list of submission dicts, or an Exception.
    delays: course_id -> seconds to sleep before answering coursework.list.
    """

    def __init__(self, courses=None, coursework=None, submissions=None, profile=None, delays=None):
        self.courses = courses if courses is not None else []
        self.coursework = coursework or {}
        self.submissions = submissions or {}
        self.profile = profile if profile is not None else {"id": "g-123", "email": "s@example.com", "name": "Sam Student"}
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    @staticmethod
    def _answer(value):
        if isinstance(value, Exception):
            raise value
        return list(value)

    def list_courses(self, token):
        self._record("list_courses", token)
        return self._answer(self.courses)

    def list_coursework(self, token, course_id):
        self._record("list_coursework", token, course_id)
        delay = self.delays.get(course_id)
        if delay:
            time.sleep(delay)
        return self._answer(self.coursework.get(course_id, []))

    def list_submissions(self, token, course_id, coursework_id, user_id):
        self._record("list_submissions", token, course_id, coursework_id, user_id)
        return self._answer(self.submissions.get((course_id, coursework_id), []))

    def get_user_profile(self, token):
        self._record("get_user_profile", token)
        if isinstance(self.profile, Exception):
            raise self.profile
        return dict(self.profile)

    def call_names(self):
        return [c[0] for c in self.calls]


class FakeTokenProvider:
    """Hands out a fixed token per user; users missing from `tokens` are not linked."""

    def __init__(self, tokens=None, exchange_result=None):
        self.tokens = tokens if tokens is not None else {"user-1": "access-abc"}
        self.exchange_result = exchange_result or TokenSet(
            "access-new", "refresh-new", datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
        )
        self.refreshed = []

    def get_valid_token(self, user_id):
        token = self.tokens.get(user_id)
        if not token:
            raise InvalidToken("Classroom account not linked")
        return token

    def get_authorization_url(self, scopes=None, state=None):
        return f"https://accounts.example.com/auth?state={state}"

    def exchange_code(self, code):
        if code == "bad-code":
            raise ExchangeFailed("Failed to exchange authorization code for tokens")
        return self.exchange_result

    def refresh_for_user(self, user_id):
        if user_id not in self.tokens:
            raise InvalidToken("No refresh token available")
        if user_id == "revoked":
            raise RefreshFailed("Failed to refresh access token")
        self.refreshed.append(user_id)
        return self.exchange_result


def course(course_id, name=None, state="ACTIVE"):
    return {"id": course_id, "name": name or f"Course {course_id}", "courseState": state}


def coursework(cw_id, course_id, title=None, **extra):
    data = {"id": cw_id, "courseId": course_id, "title": title or f"Work {cw_id}"}
    data.update(extra)
    return data


def submission(state, sub_id="sub-1", update_time="2024-03-01T10:00:00Z"):
    return {"id": sub_id, "state": state, "updateTime": update_time}


@pytest.fixture
def database():
    """Fresh in-memory SQLite database for one test."""
    db.dispose_db()
    db.init_db(db_url="sqlite://")
    yield
    db.dispose_db()


@pytest.fixture
def token_provider():
    return FakeTokenProvider()
