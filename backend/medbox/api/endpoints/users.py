from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from medbox.auth import AdminIdentity, ensure_not_self
from medbox.constants.enums import AuditAction, TargetType
from medbox.database import get_db
from medbox.dependencies import get_user_admin
from medbox.schemas.user import (
    DeactivateResult,
    PinReset,
    PinResetResult,
    RoleChangeResult,
    UserCreate,
    UserOut,
    UserRoleUpdate,
)
from medbox.services.user_admin import UserAdministration
from medbox.stores.base import UserAccount
from medbox.utils.audit_logger import record_audit_event

router = APIRouter()

UserAdmin = Annotated[UserAdministration, Depends(get_user_admin)]


def to_user_out(user: UserAccount) -> UserOut:
    return UserOut.model_validate(user.model_dump())


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    payload: UserCreate,
    identity: AdminIdentity,
    user_admin: UserAdmin,
    db: Session = Depends(get_db),
):
    """Create a user with a hashed PIN."""
    user = user_admin.create_user(
        username=payload.username,
        pin=payload.pin,
        display_name=payload.display_name,
        role=payload.role,
        created_by=identity.uid,
    )

    record_audit_event(
        db, request, AuditAction.USER_CREATE,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.USER,
        target_id=user.id,
        details={"newUsername": user.username, "role": user.role.value},
    )
    return to_user_out(user)


@router.get("", response_model=List[UserOut])
def read_users(identity: AdminIdentity, user_admin: UserAdmin):
    """List active users ordered by username."""
    return [to_user_out(user) for user in user_admin.list_active_users()]


@router.get("/{user_id}", response_model=UserOut)
def read_user(user_id: str, identity: AdminIdentity, user_admin: UserAdmin):
    """Retrieve a single user, including deactivated ones."""
    return to_user_out(user_admin.get_user(user_id))


@router.put("/{user_id}/role", response_model=RoleChangeResult)
def update_user_role(
    request: Request,
    user_id: str,
    payload: UserRoleUpdate,
    identity: AdminIdentity,
    user_admin: UserAdmin,
    db: Session = Depends(get_db),
):
    """Change a user's role and resynchronise their token claims."""
    user = user_admin.update_role(user_id, payload.role)

    record_audit_event(
        db, request, AuditAction.USER_ROLE_CHANGE,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.USER,
        target_id=user_id,
        details={"newRole": payload.role.value},
    )
    return RoleChangeResult(id=user.id, role=user.role)


@router.put("/{user_id}/reset-pin", response_model=PinResetResult)
def reset_user_pin(
    request: Request,
    user_id: str,
    payload: PinReset,
    identity: AdminIdentity,
    user_admin: UserAdmin,
    db: Session = Depends(get_db),
):
    """Set a new PIN and clear any lockout."""
    user_admin.reset_pin(user_id, payload.pin)

    record_audit_event(
        db, request, AuditAction.USER_PIN_RESET,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.USER,
        target_id=user_id,
    )
    return PinResetResult(id=user_id)


@router.delete("/{user_id}", response_model=DeactivateResult)
def deactivate_user(
    request: Request,
    user_id: str,
    identity: AdminIdentity,
    user_admin: UserAdmin,
    db: Session = Depends(get_db),
):
    """Soft-delete a user. Administrators cannot deactivate themselves."""
    ensure_not_self(identity, user_id)
    user_admin.deactivate_user(user_id)

    record_audit_event(
        db, request, AuditAction.USER_DELETE,
        user_id=identity.uid,
        username=identity.username,
        target_type=TargetType.USER,
        target_id=user_id,
    )
    return DeactivateResult(id=user_id)
