"""
Service layer: load and store linked account tokens. Each write is one transaction.
"""
from typing import Any, Dict, Optional

from sqlalchemy import delete, select

from classroom_hub.core.db import session_scope
from classroom_hub.plugins.classroom.models import ClassroomAccountLink, utc_now


def get_link(user_id: str) -> Optional[ClassroomAccountLink]:
    """Return the account link row for this user, or None if not linked."""
    with session_scope() as session:
        return (
            session.execute(
                select(ClassroomAccountLink).where(ClassroomAccountLink.user_id == user_id)
            )
            .scalars().first()
        )


def save_link(user_id: str, tokens, profile: Optional[Dict[str, Any]] = None) -> ClassroomAccountLink:
    """
    Create or update the link with new tokens (a TokenSet) and optional profile.
    A missing refresh token keeps the stored one; the OAuth server omits it on re-consent.
    """
    now = utc_now()
    with session_scope() as session:
        row = session.get(ClassroomAccountLink, user_id)
        if row is None:
            row = ClassroomAccountLink(user_id=user_id, created_at=now)
            session.add(row)
        row.access_token = tokens.access_token
        if tokens.refresh_token:
            row.refresh_token = tokens.refresh_token
        row.expiry = tokens.expiry
        if profile:
            row.google_id = profile.get("id") or row.google_id
            row.email = profile.get("email") or row.email
            row.name = profile.get("name") or row.name
        row.updated_at = now
        return row


def delete_link(user_id: str) -> bool:
    """Remove the link. Returns True if a row was deleted."""
    with session_scope() as session:
        result = session.execute(
            delete(ClassroomAccountLink).where(ClassroomAccountLink.user_id == user_id)
        )
        return bool(result.rowcount)
