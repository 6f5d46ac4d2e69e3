"""
Account link persistence tests
"""
from datetime import datetime

from classroom_hub.plugins.classroom import service
from classroom_hub.plugins.classroom.models import utc_now
from classroom_hub.plugins.classroom.token_provider import TokenSet


def test_get_link_missing(database):
    assert service.get_link("user-1") is None


def test_save_creates_link_with_profile(database):
    expiry = datetime(2030, 1, 1, 12, 0)
    service.save_link(
        "user-1",
        TokenSet("access-1", "refresh-1", expiry),
        {"id": "g-1", "email": "sam@example.com", "name": "Sam"},
    )
    link = service.get_link("user-1")
    assert link.access_token == "access-1"
    assert link.refresh_token == "refresh-1"
    assert link.expiry == expiry
    assert link.google_id == "g-1"
    assert link.email == "sam@example.com"
    assert link.created_at is not None


def test_save_updates_and_keeps_refresh_token_and_profile(database):
    service.save_link("user-1", TokenSet("access-1", "refresh-1"), {"id": "g-1", "email": "sam@example.com"})
    service.save_link("user-1", TokenSet("access-2", None))
    link = service.get_link("user-1")
    assert link.access_token == "access-2"
    assert link.refresh_token == "refresh-1"
    assert link.email == "sam@example.com"


def test_links_are_per_user(database):
    service.save_link("user-1", TokenSet("access-1"))
    service.save_link("user-2", TokenSet("access-2"))
    assert service.get_link("user-1").access_token == "access-1"
    assert service.get_link("user-2").access_token == "access-2"


def test_delete_link(database):
    service.save_link("user-1", TokenSet("access-1"))
    assert service.delete_link("user-1") is True
    assert service.get_link("user-1") is None
    assert service.delete_link("user-1") is False


def test_timestamps_are_naive_utc(database):
    before = utc_now()
    service.save_link("user-1", TokenSet("access-1"))
    link = service.get_link("user-1")
    assert link.updated_at.tzinfo is None
    assert before <= link.created_at <= utc_now()
