from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from medbox.constants.enums import Role, UserStatus


class UserAccount(BaseModel):
    """User as handed out by the services. Never carries the PIN hash."""
    id: str = Field(..., description="Stable identifier, equal to the normalized username")
    username: str
    display_name: str
    role: Role = Role.USER
    failed_attempts: int = 0
    last_failed_at: Optional[datetime] = None
    is_active: bool = True
    created_by: str = "system"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def status(self) -> UserStatus:
        return UserStatus.ACTIVE if self.is_active else UserStatus.DEACTIVATED


class UserRecord(UserAccount):
    """Stored user. Only the store and the login path read pin_hash."""
    pin_hash: str = Field(..., repr=False)

    def to_account(self) -> UserAccount:
        return UserAccount.model_validate(self.model_dump(exclude={"pin_hash"}))


class UserStore(ABC):
    """Persistent credential store. Mutations return False when the user does not exist."""

    @abstractmethod
    def get(self, uid: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    def create(
        self,
        uid: str,
        username: str,
        display_name: str,
        pin_hash: str,
        role: Role,
        created_by: str,
    ) -> UserRecord:
        """Insert a new active user. Raises DuplicateUsername if the id is taken."""
        pass

    @abstractmethod
    def list_active(self) -> List[UserRecord]:
        """Active users ordered by username."""
        pass

    @abstractmethod
    def active_ids(self, uids: Iterable[str]) -> Set[str]:
        """Subset of uids that name active users."""
        pass

    @abstractmethod
    def set_role(self, uid: str, role: Role) -> bool:
        pass

    @abstractmethod
    def set_pin_hash(self, uid: str, pin_hash: str) -> bool:
        """Replace the PIN hash and clear lockout counters."""
        pass

    @abstractmethod
    def deactivate(self, uid: str) -> bool:
        pass

    @abstractmethod
    def record_failed_attempt(self, uid: str, at: datetime, max_attempts: int) -> int:
        """Atomically bump failed_attempts (capped at max_attempts) and return the new count."""
        pass

    @abstractmethod
    def reset_failed_attempts(self, uid: str, clear_last_failed: bool = True) -> None:
        pass
