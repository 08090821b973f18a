from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Index
from sqlalchemy.orm import backref, relationship

from core.database import Base

class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Store ONLY a hash of the refresh token (never the raw token)
    token_hash = Column(String(128), nullable=False, unique=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # passive_deletes: let the FK cascade remove tokens instead of nulling user_id
    user = relationship("User", backref=backref("refresh_tokens", passive_deletes=True))

Index("ix_refresh_tokens_hash_expiry", RefreshToken.token_hash, RefreshToken.expires_at)
