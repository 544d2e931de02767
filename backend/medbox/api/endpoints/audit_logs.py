from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from medbox.auth import CurrentIdentity
from medbox.constants.enums import AuditAction
from medbox.database import get_db
from medbox.errors import Forbidden, NotFound
from medbox.models.audit_log import AuditLog
from medbox.schemas.audit import AuditLogInDB

router = APIRouter(
    tags=["audit-logs"]
)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


@router.get("", response_model=List[AuditLogInDB])
def read_audit_logs(
    identity: CurrentIdentity,
    action: Optional[AuditAction] = Query(None, description="Filter by action"),
    target_id: Optional[str] = Query(None, alias="targetId", description="Filter by affected entity id"),
    user_id: Optional[str] = Query(None, alias="userId", description="Filter by acting user (admin only)"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description=f"Page size, capped at {MAX_PAGE_SIZE}; 0 or less means the default"),
    start_after: Optional[int] = Query(None, alias="startAfter", description="Id of the last entry of the previous page"),
    db: Session = Depends(get_db),
):
    """Retrieve audit logs, newest first. Standard users only ever see their own actions."""
    query = select(AuditLog)

    if not identity.is_admin:
        query = query.where(AuditLog.user_id == identity.uid)
    elif user_id:
        query = query.where(AuditLog.user_id == user_id)

    if action:
        query = query.where(AuditLog.action == action.value)
    if target_id:
        query = query.where(AuditLog.target_id == target_id)

    if start_after is not None:
        cursor = db.get(AuditLog, start_after)
        if cursor is not None:
            query = query.where(
                or_(
                    AuditLog.timestamp < cursor.timestamp,
                    and_(AuditLog.timestamp == cursor.timestamp, AuditLog.id < cursor.id),
                )
            )

    page_size = min(limit, MAX_PAGE_SIZE) if limit > 0 else DEFAULT_PAGE_SIZE
    query = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(page_size)
    return [AuditLogInDB.model_validate(entry) for entry in db.scalars(query).all()]


@router.get("/{log_id}", response_model=AuditLogInDB)
def read_audit_log(log_id: int, identity: CurrentIdentity, db: Session = Depends(get_db)):
    """Retrieve a single audit log by ID."""
    entry = db.get(AuditLog, log_id)
    if entry is None:
        raise NotFound("Audit log not found")
    if not identity.is_admin and entry.user_id != identity.uid:
        raise Forbidden()
    return AuditLogInDB.model_validate(entry)
