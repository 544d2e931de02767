from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from medbox.auth import AdminIdentity, CurrentIdentity, ensure_box_access
from medbox.constants.enums import AuditAction, TargetType
from medbox.database import get_db
from medbox.dependencies import get_user_admin
from medbox.errors import ValidationError
from medbox.schemas.box import AssignResult, BoxAssign, BoxCreate, BoxOut, BoxUpdate, InventoryCheck
from medbox.services import box_service
from medbox.services.user_admin import UserAdministration
from medbox.utils.audit_logger import record_audit_event

router = APIRouter()


@router.get("", response_model=List[BoxOut])
def read_boxes(identity: CurrentIdentity, db: Session = Depends(get_db)):
    """List medication boxes. Admins see all; standard users see only their assigned boxes."""
    return [BoxOut.model_validate(box) for box in box_service.list_boxes(db, identity)]


@router.get("/{box_id}", response_model=BoxOut)
def read_box(box_id: int, identity: CurrentIdentity, db: Session = Depends(get_db)):
    box = box_service.get_box(db, box_id)
    ensure_box_access(identity, box)
    return BoxOut.model_validate(box)


@router.post("", response_model=BoxOut, status_code=status.HTTP_201_CREATED)
def create_box(
    request: Request,
    payload: BoxCreate,
    identity: CurrentIdentity,
    db: Session = Depends(get_db),
):
    """Create a new medication box."""
    box = box_service.create_box(db, payload, created_by=identity.uid)

    record_audit_event(
        db, request, AuditAction.BOX_CREATE,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.MEDICATION_BOX,
        target_id=box.id,
        details={"boxNumber": box.box_number},
    )
    return BoxOut.model_validate(box)


@router.put("/{box_id}", response_model=BoxOut)
def update_box(
    request: Request,
    box_id: int,
    payload: BoxUpdate,
    identity: CurrentIdentity,
    db: Session = Depends(get_db),
):
    """Update allow-listed fields of a box."""
    box = box_service.get_box(db, box_id)
    ensure_box_access(identity, box)

    box, changes = box_service.update_box(db, box, payload, updated_by=identity.uid)

    record_audit_event(
        db, request, AuditAction.BOX_UPDATE,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.MEDICATION_BOX,
        target_id=box_id,
        details={"changes": changes},
    )
    return BoxOut.model_validate(box)


@router.delete("/{box_id}")
def delete_box(
    request: Request,
    box_id: int,
    identity: AdminIdentity,
    db: Session = Depends(get_db),
):
    """Delete a box (admin only)."""
    box = box_service.get_box(db, box_id)
    box_number = box.box_number
    box_service.delete_box(db, box)

    record_audit_event(
        db, request, AuditAction.BOX_DELETE,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.MEDICATION_BOX,
        target_id=box_id,
        details={"boxNumber": box_number},
    )
    return {"message": "Box deleted successfully"}


@router.post("/{box_id}/assign", response_model=AssignResult)
def assign_box(
    request: Request,
    box_id: int,
    payload: BoxAssign,
    identity: AdminIdentity,
    user_admin: Annotated[UserAdministration, Depends(get_user_admin)],
    db: Session = Depends(get_db),
):
    """Replace the list of users assigned to a box (admin only)."""
    box = box_service.get_box(db, box_id)

    unknown = user_admin.unknown_user_ids(payload.user_ids)
    if unknown:
        raise ValidationError(f"Unknown or inactive user id(s): {', '.join(sorted(unknown))}")

    box = box_service.assign_box(db, box, payload.user_ids)

    record_audit_event(
        db, request, AuditAction.BOX_ASSIGN,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.MEDICATION_BOX,
        target_id=box_id,
        details={"assignedTo": box.assigned_to},
    )
    return AssignResult(id=box.id, assigned_to=box.assigned_to)


@router.post("/{box_id}/inventory", response_model=BoxOut)
def record_inventory(
    request: Request,
    box_id: int,
    payload: InventoryCheck,
    identity: CurrentIdentity,
    db: Session = Depends(get_db),
):
    """Record an inventory check, replacing the box's medication list."""
    box = box_service.get_box(db, box_id)
    ensure_box_access(identity, box)

    box = box_service.record_inventory_check(db, box, payload.medications, checked_by=identity.uid)

    record_audit_event(
        db, request, AuditAction.INVENTORY_CHECK,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.MEDICATION_BOX,
        target_id=box_id,
        details={"medicationCount": len(payload.medications)},
    )
    return BoxOut.model_validate(box)
