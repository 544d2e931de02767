"""Audit log model for tracking all system operations."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from medbox.database import Base
from medbox.models.user import utcnow


class AuditLog(Base):
    """Append-only audit trail; rows are never updated."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Actor
    user_id = Column(String(100), nullable=True, index=True)
    username = Column(String(100), nullable=True)

    # Action details
    action = Column(String(50), nullable=False)  # see AuditAction
    target_type = Column(String(50), nullable=True)  # 'user', 'medication-box'
    target_id = Column(String(100), nullable=True, index=True)
    details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    success = Column(Boolean, default=True, nullable=False)

    # IP tracking
    ip_address = Column(String(45), nullable=True)  # Client IP (supports IPv6)
    user_agent = Column(String, nullable=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_audit_logs_timestamp_desc', timestamp.desc()),
        Index('idx_audit_logs_action', 'action'),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', target='{self.target_type}')>"
