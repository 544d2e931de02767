"""Audit trail writers."""

import logging
from typing import Optional, Dict, Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medbox.constants.enums import AuditAction, TargetType
from medbox.models.audit_log import AuditLog
from medbox.utils.ip_extractor import get_client_ip, get_user_agent

log = logging.getLogger(__name__)


def create_audit_log(
    db: Session,
    request: Request,
    action: AuditAction,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    target_type: Optional[TargetType] = None,
    target_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
) -> AuditLog:
    """
    Append an audit entry stamped with the caller's IP address and user agent.

    Args:
        db: Database session
        request: FastAPI Request object (for IP/user-agent extraction)
        action: One of AuditAction
        user_id: Id of the acting user
        username: Username of the acting user
        target_type: Kind of entity affected
        target_id: Id of the affected entity
        details: Additional context as JSON
        success: False for rejected attempts such as LOGIN_FAILED

    Returns:
        Created AuditLog instance

    Raises:
        SQLAlchemyError: when the write fails. Use record_audit_event where
        the primary operation must not be affected by audit failures.
    """
    audit_log = AuditLog(
        user_id=user_id,
        username=username,
        action=AuditAction(action).value,
        target_type=TargetType(target_type).value if target_type else None,
        target_id=str(target_id) if target_id is not None else None,
        details=details or {},
        success=success,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )

    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)

    return audit_log


def record_audit_event(db: Session, request: Request, action: AuditAction, **fields) -> Optional[AuditLog]:
    """Write an audit entry; failures are logged and swallowed so they never mask the primary outcome."""
    try:
        return create_audit_log(db, request, action, **fields)
    except SQLAlchemyError as exc:
        db.rollback()
        log.warning(f"Failed to write audit log for {AuditAction(action).value}: {exc}")
        return None
