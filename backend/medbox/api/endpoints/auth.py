from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from medbox.auth import CurrentIdentity
from medbox.constants.enums import AuditAction, TargetType
from medbox.database import get_db
from medbox.dependencies import get_login_authenticator
from medbox.errors import MedboxError
from medbox.schemas.auth import Identity, LoginRequest, LoginResponse
from medbox.schemas.user import UserProfile
from medbox.services.login import LoginAuthenticator
from medbox.utils.audit_logger import record_audit_event
from medbox.utils.pin_hash import normalize_username

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    credentials: LoginRequest,
    authenticator: Annotated[LoginAuthenticator, Depends(get_login_authenticator)],
    db: Session = Depends(get_db),
):
    """Authenticate with username + 4-digit PIN and return a bearer token."""
    attempted = normalize_username(credentials.username)
    try:
        result = authenticator.login(credentials.username, credentials.pin)
    except Exception as exc:
        # Store outages and unexpected errors are audited too
        reason = exc.message if isinstance(exc, MedboxError) else "Internal server error"
        record_audit_event(
            db, request, AuditAction.LOGIN_FAILED,
            user_id=attempted,
            username=attempted,
            target_type=TargetType.USER,
            target_id=attempted,
            details={"reason": reason},
            success=False,
        )
        raise

    user = result.user
    record_audit_event(
        db, request, AuditAction.LOGIN,
        user_id=user.id,
        username=user.username,
        target_type=TargetType.USER,
        target_id=user.id,
        details={"method": "pin"},
    )
    return LoginResponse(
        user=UserProfile.model_validate(user.model_dump()),
        token=result.token,
    )


@router.get("/me", response_model=Identity)
def read_identity(identity: CurrentIdentity):
    """Return the identity carried by the presented token."""
    return identity
