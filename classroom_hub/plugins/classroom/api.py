"""
Per-plugin API for Classroom. Mounted at /api/ (see API_PREFIX).
- /assignments, /assignments/courses: aggregated view for the current user.
- /auth/...: link, refresh, inspect and unlink the Google account.

The current user comes from the X-User-Id header; session handling lives outside
this service and is expected to set it.
"""
import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from classroom_hub.core.errors import ClassroomHubError, NotAuthenticated

from . import build_services, service
from .backends.base import SubmissionState
from .oauth_state import sign_state, verify_state

API_PREFIX = "/api"

DISCONNECT_POLL_SECONDS = 0.25

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    "INVALID_TOKEN": 401,
    "UNAUTHENTICATED": 401,
    "REFRESH_FAILED": 401,
    "EXCHANGE_FAILED": 400,
    "UPSTREAM_UNAVAILABLE": 502,
    "COURSE_NOT_FOUND": 502,
    "CANCELLED": 499,
}

_USER_MESSAGES = {
    "INVALID_TOKEN": "Google authentication required",
    "UPSTREAM_UNAVAILABLE": "Google Classroom is unavailable, try again later",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssignmentResponse(_CamelModel):
    """One aggregated assignment: coursework, course name and submission status."""

    id: str
    title: str
    description: str = ""
    course_id: str
    course_name: str
    due_date: Optional[str] = None
    creation_time: Optional[str] = None
    update_time: Optional[str] = None
    max_points: Optional[float] = None
    work_type: str = "ASSIGNMENT"
    state: str = "PUBLISHED"
    alternate_link: Optional[str] = None
    materials: List[Dict[str, Any]] = []
    is_solved: bool = False
    submission_state: SubmissionState = SubmissionState.NEW
    submission_id: Optional[str] = None
    submission_update_time: Optional[str] = None


class AssignmentsData(_CamelModel):
    assignments: List[AssignmentResponse]
    total_count: int


class AssignmentsResponse(BaseModel):
    success: bool = True
    data: AssignmentsData


class CourseResponse(_CamelModel):
    id: str
    name: str
    state: str
    section: Optional[str] = None
    alternate_link: Optional[str] = None


class CoursesData(_CamelModel):
    courses: List[CourseResponse]
    total_count: int


class CoursesResponse(BaseModel):
    success: bool = True
    data: CoursesData


class AuthUrlResponse(_CamelModel):
    auth_url: str


class CallbackRequest(BaseModel):
    code: str


class LinkStatusData(_CamelModel):
    linked: bool
    email: Optional[str] = None
    name: Optional[str] = None
    expiry: Optional[datetime] = None


class LinkStatusResponse(BaseModel):
    success: bool = True
    data: LinkStatusData


class MessageResponse(BaseModel):
    success: bool = True
    message: str


def error_response(exc: ClassroomHubError) -> JSONResponse:
    """Structured failure body: {success: false, error, code}."""
    return JSONResponse(
        status_code=_STATUS_CODES.get(exc.code, 500),
        content={
            "success": False,
            "error": _USER_MESSAGES.get(exc.code, exc.message),
            "code": exc.code,
        },
    )


def _state_secret(config: Dict[str, Any]) -> str:
    return config.get("state_secret") or config.get("client_secret") or ""


def get_current_user_id(x_user_id: Optional[str]) -> str:
    """Principal of the request. Missing header means the user is not signed in."""
    if not x_user_id:
        raise NotAuthenticated("Sign in required")
    return x_user_id


async def _run_cancellable(request: Request, func, *args):
    """Run a blocking call in the threadpool; set its cancel event if the client goes away."""
    cancel_event = threading.Event()
    task = asyncio.ensure_future(run_in_threadpool(func, *args, cancel_event=cancel_event))
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling aggregation")
                cancel_event.set()
    finally:
        if not task.done():
            cancel_event.set()


def get_router(hub_app: Any) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix API_PREFIX."""
    router = APIRouter(tags=["Classroom"])

    injected = getattr(hub_app, "classroom_services", None)
    holder = {"services": injected or build_services(hub_app.config.get_classroom_config())}

    if injected is None:
        def _on_config_change(_data: Dict[str, Any]) -> None:
            try:
                holder["services"] = build_services(hub_app.config.get_classroom_config())
                logger.info("Classroom services rebuilt after config change")
            except Exception as e:
                logger.error(f"Keeping previous classroom services, rebuild failed: {e}")

        hub_app.config.register_change_callback(_on_config_change)

    def _redirect_or_json(params: Dict[str, str], status_code: int = 200):
        frontend_url = (holder["services"].config.get("frontend_url") or "").rstrip("/")
        if frontend_url:
            return RedirectResponse(f"{frontend_url}/dashboard?{urlencode(params)}")
        success = "error" not in params
        return JSONResponse(status_code=status_code, content={"success": success, **params})

    def _link_with_code(user_id: str, code: str):
        services = holder["services"]
        tokens = services.token_provider.exchange_code(code)
        profile = None
        try:
            profile = services.backend.get_user_profile(tokens.access_token)
        except ClassroomHubError as e:
            logger.warning(f"Linked account for user {user_id} without profile: {e}")
        return service.save_link(user_id, tokens, profile)

    @router.get("/assignments", response_model=AssignmentsResponse)
    async def get_assignments(request: Request, x_user_id: Optional[str] = Header(default=None)):
        """All assignments across the user's active courses, annotated with submission status."""
        try:
            user_id = get_current_user_id(x_user_id)
            result = await _run_cancellable(request, holder["services"].aggregator.aggregate, user_id)
            assignments = [AssignmentResponse(**a._asdict()) for a in result.assignments]
        except ClassroomHubError as e:
            logger.info(f"Assignments request failed with {e.code}: {e.message}")
            return error_response(e)
        return AssignmentsResponse(
            data=AssignmentsData(assignments=assignments, total_count=result.total_count)
        )

    @router.get("/assignments/courses", response_model=CoursesResponse)
    def get_courses(x_user_id: Optional[str] = Header(default=None)):
        """Active courses of the linked account."""
        try:
            user_id = get_current_user_id(x_user_id)
            courses = holder["services"].aggregator.list_courses_for_user(user_id)
        except ClassroomHubError as e:
            return error_response(e)
        return CoursesResponse(
            data=CoursesData(
                courses=[CourseResponse(**c._asdict()) for c in courses],
                total_count=len(courses),
            )
        )

    @router.get("/auth/google", response_model=AuthUrlResponse)
    def get_auth_url(x_user_id: Optional[str] = Header(default=None)):
        """Consent URL; the signed state parameter carries the user id back to the callback."""
        try:
            user_id = get_current_user_id(x_user_id)
        except ClassroomHubError as e:
            return error_response(e)
        services = holder["services"]
        state = sign_state(user_id, _state_secret(services.config))
        url = services.token_provider.get_authorization_url(state=state)
        return AuthUrlResponse(auth_url=url)

    @router.get("/auth/google/callback")
    def google_callback(
        code: Optional[str] = Query(default=None),
        state: Optional[str] = Query(default=None),
        error: Optional[str] = Query(default=None),
    ):
        """Redirect target of the consent screen."""
        if error:
            logger.error(f"OAuth error: {error}")
            return _redirect_or_json({"error": "oauth_error"}, status_code=400)
        if not code:
            return _redirect_or_json({"error": "no_code"}, status_code=400)
        if not state:
            return _redirect_or_json({"error": "no_state"}, status_code=400)
        user_id = verify_state(state, _state_secret(holder["services"].config))
        if user_id is None:
            logger.warning("OAuth callback rejected: state signature does not match")
            return _redirect_or_json({"error": "invalid_state"}, status_code=400)
        try:
            _link_with_code(user_id, code)
        except ClassroomHubError as e:
            logger.error(f"OAuth callback failed for user {user_id}: {e}")
            return _redirect_or_json({"error": "auth_failed"}, status_code=400)
        return _redirect_or_json({"google_auth": "success"})

    @router.post("/auth/google/callback", response_model=LinkStatusResponse)
    def google_callback_post(body: CallbackRequest, x_user_id: Optional[str] = Header(default=None)):
        """Link the current user's account with a code the frontend received."""
        try:
            user_id = get_current_user_id(x_user_id)
            link = _link_with_code(user_id, body.code)
        except ClassroomHubError as e:
            return error_response(e)
        return LinkStatusResponse(
            data=LinkStatusData(linked=True, email=link.email, name=link.name, expiry=link.expiry)
        )

    @router.post("/auth/refresh-token", response_model=MessageResponse)
    def refresh_token(x_user_id: Optional[str] = Header(default=None)):
        try:
            user_id = get_current_user_id(x_user_id)
            holder["services"].token_provider.refresh_for_user(user_id)
        except ClassroomHubError as e:
            return error_response(e)
        return MessageResponse(message="Token refreshed successfully")

    @router.get("/auth/google/status", response_model=LinkStatusResponse)
    def link_status(x_user_id: Optional[str] = Header(default=None)):
        try:
            user_id = get_current_user_id(x_user_id)
        except ClassroomHubError as e:
            return error_response(e)
        link = service.get_link(user_id)
        if link is None or not link.access_token:
            return LinkStatusResponse(data=LinkStatusData(linked=False))
        return LinkStatusResponse(
            data=LinkStatusData(linked=True, email=link.email, name=link.name, expiry=link.expiry)
        )

    @router.delete("/auth/google", response_model=MessageResponse)
    def unlink(x_user_id: Optional[str] = Header(default=None)):
        try:
            user_id = get_current_user_id(x_user_id)
        except ClassroomHubError as e:
            return error_response(e)
        if service.delete_link(user_id):
            return MessageResponse(message="Google account unlinked")
        return MessageResponse(success=False, message="No Google account linked")

    return router
