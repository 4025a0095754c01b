"""SQLAlchemy models for persisted config slots. Use Alembic for migrations."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, PrimaryKeyConstraint, String, Text

from .session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConfigSlot(Base):
    """One key of the client-scoped key-value store (live, draft, versions, ...)."""
    __tablename__ = "config_slots"
    __table_args__ = (PrimaryKeyConstraint("client_id", "key"),)

    client_id = Column("client_id", String, nullable=False)
    key = Column(String, nullable=False)
    value = Column(Text, nullable=False)
    created_at = Column("created_at", DateTime(timezone=True), default=_utcnow)
    updated_at = Column("updated_at", DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
