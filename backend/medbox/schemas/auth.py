from typing import Annotated

from pydantic import Field, StringConstraints

from medbox.constants.enums import Role
from medbox.schemas.base import CamelModel
from medbox.schemas.user import Pin, UserProfile


class LoginRequest(CamelModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=30)]
    pin: Pin = Field(..., description="Exactly 4 digits")


class LoginResponse(CamelModel):
    message: str = "Login successful"
    user: UserProfile
    token: str
    token_type: str = "bearer"


class Identity(CamelModel):
    """Caller identity derived from verified token claims."""
    uid: str
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
