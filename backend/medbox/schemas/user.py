from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field, StringConstraints

from medbox.constants.enums import Role
from medbox.schemas.base import CamelModel

Username = Annotated[str, StringConstraints(pattern=r"^[a-zA-Z0-9_]{2,30}$")]
Pin = Annotated[str, StringConstraints(pattern=r"^\d{4}$")]
DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


class UserCreate(CamelModel):
    username: Username = Field(..., description="2-30 alphanumeric characters or underscores")
    pin: Pin = Field(..., description="Exactly 4 digits")
    display_name: DisplayName
    role: Role


class UserRoleUpdate(CamelModel):
    role: Role


class PinReset(CamelModel):
    pin: Pin = Field(..., description="Exactly 4 digits")


class UserProfile(CamelModel):
    """Minimal profile returned on login."""
    id: str
    username: str
    display_name: str
    role: Role


class UserOut(UserProfile):
    """Full user view for administrators. Never carries the PIN hash."""
    failed_attempts: int
    last_failed_at: Optional[datetime] = None
    is_active: bool
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleChangeResult(CamelModel):
    id: str
    role: Role


class PinResetResult(CamelModel):
    id: str
    pin_reset: bool = True


class DeactivateResult(CamelModel):
    id: str
    is_active: bool = False
