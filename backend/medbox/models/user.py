"""User model for PIN authentication."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from medbox.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Credential record keyed by the normalized username."""

    __tablename__ = "users"

    id = Column(String(30), primary_key=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    display_name = Column(String(50), nullable=False)
    pin_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # 'admin' or 'user'

    # Lockout counters
    failed_attempts = Column(Integer, default=0, nullable=False)
    last_failed_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_by = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', role='{self.role}', active={self.is_active})>"
