"""
Signed OAuth state tests
"""
import pytest

from classroom_hub.plugins.classroom.oauth_state import sign_state, verify_state

SECRET = "server-secret"


def test_signed_state_round_trips():
    assert verify_state(sign_state("user-1", SECRET), SECRET) == "user-1"


def test_user_ids_containing_separator():
    assert verify_state(sign_state("first.last@example.com", SECRET), SECRET) == "first.last@example.com"


@pytest.mark.parametrize(
    "state",
    [
        None,
        "",
        "victim",
        "victim.",
        ".deadbeef",
        "victim.0000",
    ],
)
def test_unsigned_or_malformed_state_is_rejected(state):
    assert verify_state(state, SECRET) is None


def test_swapped_user_id_is_rejected():
    _, _, signature = sign_state("attacker", SECRET).rpartition(".")
    assert verify_state(f"victim.{signature}", SECRET) is None


def test_state_signed_with_other_secret_is_rejected():
    assert verify_state(sign_state("user-1", "other-secret"), SECRET) is None


def test_signing_requires_secret():
    with pytest.raises(ValueError):
        sign_state("user-1", "")
    assert verify_state(sign_state("user-1", SECRET), "") is None
