"""
Google Classroom backend built on google-api-python-client.

A fresh service object is built for every call from the token passed in, so no
credentials object is ever shared between requests or threads.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

import httplib2
import google_auth_httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from classroom_hub.core.errors import CourseNotFound, InvalidToken, UpstreamUnavailable

from .base import ClassroomBackend

PAGE_SIZE = 100

SUBMISSION_STATES = ["NEW", "CREATED", "TURNED_IN", "RETURNED", "RECLAIMED_BY_STUDENT"]


def map_http_error(e: HttpError, what: str):
    """Translate an HttpError into the error taxonomy."""
    status = getattr(e.resp, "status", None)
    if status == 401:
        return InvalidToken(f"{what}: token rejected", cause=e)
    if status == 404:
        return CourseNotFound(f"{what}: not found", cause=e)
    return UpstreamUnavailable(f"{what}: HTTP {status}", cause=e)


class GoogleClassroomBackend(ClassroomBackend):
    """Classroom API v1 plus OAuth2 userinfo, one authorized http per call."""

    def __init__(
        self,
        request_timeout: float = 10,
        num_retries: int = 0,
        service_factory: Callable[..., Any] = build,
        logger: Optional[logging.Logger] = None,
    ):
        self.request_timeout = request_timeout
        self.num_retries = num_retries
        self.service_factory = service_factory
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def _service(self, token: str, api: str = "classroom", version: str = "v1"):
        creds = Credentials(token=token)
        http = google_auth_httplib2.AuthorizedHttp(
            creds, http=httplib2.Http(timeout=self.request_timeout)
        )
        return self.service_factory(api, version, http=http, cache_discovery=False)

    def _execute(self, request, what: str) -> Dict[str, Any]:
        try:
            return request.execute(num_retries=self.num_retries) or {}
        except HttpError as e:
            raise map_http_error(e, what) from e
        except RefreshError as e:
            # The bare access token cannot be refreshed here; a 401 surfaces this way.
            raise InvalidToken(f"{what}: token expired", cause=e) from e
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            raise UpstreamUnavailable(f"{what}: {e}", cause=e) from e

    def _paginate(self, make_request: Callable[[Optional[str]], Any], key: str, what: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page_token = None
        while True:
            resp = self._execute(make_request(page_token), what)
            items.extend(resp.get(key, []))
            page_token = resp.get("nextPageToken")
            if not page_token:
                return items

    def list_courses(self, token: str) -> List[Dict[str, Any]]:
        courses = self._service(token).courses()
        return self._paginate(
            lambda page_token: courses.list(
                courseStates=["ACTIVE"], pageSize=PAGE_SIZE, pageToken=page_token
            ),
            "courses",
            "courses.list",
        )

    def list_coursework(self, token: str, course_id: str) -> List[Dict[str, Any]]:
        coursework = self._service(token).courses().courseWork()
        return self._paginate(
            lambda page_token: coursework.list(
                courseId=course_id,
                courseWorkStates=["PUBLISHED", "DRAFT"],
                pageSize=PAGE_SIZE,
                pageToken=page_token,
            ),
            "courseWork",
            f"courseWork.list({course_id})",
        )

    def list_submissions(
        self, token: str, course_id: str, coursework_id: str, user_id: str
    ) -> List[Dict[str, Any]]:
        submissions = self._service(token).courses().courseWork().studentSubmissions()
        return self._paginate(
            lambda page_token: submissions.list(
                courseId=course_id,
                courseWorkId=coursework_id,
                userId=user_id,
                states=SUBMISSION_STATES,
                pageToken=page_token,
            ),
            "studentSubmissions",
            f"studentSubmissions.list({course_id}/{coursework_id})",
        )

    def get_user_profile(self, token: str) -> Dict[str, Any]:
        userinfo = self._service(token, "oauth2", "v2").userinfo()
        data = self._execute(userinfo.get(), "userinfo.get")
        return {"id": data.get("id"), "email": data.get("email"), "name": data.get("name")}
