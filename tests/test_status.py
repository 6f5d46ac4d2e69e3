"""
Submission status resolver tests
"""
import pytest

from classroom_hub.core.errors import InvalidToken, UpstreamUnavailable
from classroom_hub.plugins.classroom.backends.base import SubmissionState
from classroom_hub.plugins.classroom.status import SubmissionStatusResolver

from conftest import FakeBackend, submission


def resolve(submissions):
    backend = FakeBackend(submissions={("c1", "w1"): submissions})
    return SubmissionStatusResolver(backend).resolve_status("tok", "c1", "w1", "g-123"), backend


@pytest.mark.parametrize("state", ["TURNED_IN", "RETURNED"])
def test_turned_in_and_returned_are_solved(state):
    status, _ = resolve([submission(state)])
    assert status.is_solved is True
    assert status.state == SubmissionState(state)


@pytest.mark.parametrize("state", ["NEW", "CREATED", "RECLAIMED_BY_STUDENT"])
def test_other_defined_states_are_unsolved(state):
    status, _ = resolve([submission(state)])
    assert status.is_solved is False
    assert status.state == SubmissionState(state)


def test_no_submission_means_not_started():
    status, _ = resolve([])
    assert status.is_solved is False
    assert status.state is SubmissionState.NEW
    assert status.submission_id is None


def test_unmapped_state_is_unknown_and_unsolved():
    status, _ = resolve([submission("SUBMISSION_STATE_UNSPECIFIED")])
    assert status.state is SubmissionState.UNKNOWN
    assert status.is_solved is False


def test_first_submission_wins():
    status, _ = resolve([
        submission("CREATED", sub_id="first", update_time="2024-01-01T00:00:00Z"),
        submission("TURNED_IN", sub_id="second", update_time="2024-02-01T00:00:00Z"),
    ])
    assert status.submission_id == "first"
    assert status.state is SubmissionState.CREATED
    assert status.update_time == "2024-01-01T00:00:00Z"


def test_user_id_is_passed_through():
    _, backend = resolve([])
    assert backend.calls == [("list_submissions", "tok", "c1", "w1", "g-123")]


@pytest.mark.parametrize(
    "error",
    [UpstreamUnavailable("boom"), InvalidToken("rejected"), RuntimeError("unexpected")],
)
def test_errors_degrade_to_unknown(error, caplog):
    backend = FakeBackend(submissions={("c1", "w1"): error})
    status = SubmissionStatusResolver(backend).resolve_status("tok", "c1", "w1", "me")
    assert status.is_solved is False
    assert status.state is SubmissionState.UNKNOWN
    assert "Could not resolve submission" in caplog.text


def test_malformed_submission_degrades_to_unknown():
    backend = FakeBackend(submissions={("c1", "w1"): ["not-a-dict"]})
    status = SubmissionStatusResolver(backend).resolve_status("tok", "c1", "w1", "me")
    assert status.state is SubmissionState.UNKNOWN


def test_submission_fields_are_strings():
    status, _ = resolve([{"id": 987, "state": "TURNED_IN", "updateTime": None}])
    assert status.submission_id == "987"
    assert status.update_time is None
