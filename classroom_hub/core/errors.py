"""
Error taxonomy shared by the token provider, the upstream backends and the API.
Each error carries a machine-readable code that the HTTP layer returns as-is.
"""
from typing import Optional


class ClassroomHubError(Exception):
    """Base for all errors raised by classroom_hub."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.cause = cause


class InvalidToken(ClassroomHubError):
    """No linked account, or the access token is missing, expired or rejected (HTTP 401)."""

    code = "INVALID_TOKEN"


class UpstreamUnavailable(ClassroomHubError):
    """The classroom service errored, timed out or could not be reached."""

    code = "UPSTREAM_UNAVAILABLE"


class CourseNotFound(UpstreamUnavailable):
    """Upstream answered 404 for a course."""

    code = "COURSE_NOT_FOUND"


class ExchangeFailed(ClassroomHubError):
    """Authorization code was rejected by the OAuth server."""

    code = "EXCHANGE_FAILED"


class RefreshFailed(ClassroomHubError):
    """Refresh token was rejected by the OAuth server."""

    code = "REFRESH_FAILED"


class AggregationCancelled(ClassroomHubError):
    """The caller cancelled an aggregation while upstream calls were outstanding."""

    code = "CANCELLED"


class NotAuthenticated(ClassroomHubError):
    """The request carries no signed-in user."""

    code = "UNAUTHENTICATED"
