from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Integer, String

from core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Always stored normalized (trimmed + lower-cased)
    email = Column(String(255), nullable=False, unique=True, index=True)

    # NULL = federated-only account (Google), cannot log in with a password
    password_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
