"""
SQLAlchemy models for linked classroom accounts: one row per local user.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text

from classroom_hub.core.db import Base


def utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ClassroomAccountLink(Base):
    """OAuth tokens and profile of the Google account a local user linked. expiry is naive UTC."""
    __tablename__ = "classroom_account_links"

    user_id = Column(String(255), primary_key=True)
    google_id = Column(String(255), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expiry = Column(DateTime(timezone=False), nullable=True)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=utc_now, onupdate=utc_now, nullable=False)
