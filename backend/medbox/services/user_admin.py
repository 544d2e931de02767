import logging
from typing import Iterable, List, Set

from medbox.constants.enums import Role
from medbox.errors import DuplicateUsername, UserNotFound
from medbox.services.token_authority import TokenAuthority
from medbox.stores.base import UserAccount, UserStore
from medbox.utils.pin_hash import hash_pin, normalize_username

log = logging.getLogger(__name__)


class UserAdministration:
    """Account management on the credential store, keeping token claims in step with roles."""

    def __init__(self, user_store: UserStore, token_authority: TokenAuthority):
        self.user_store = user_store
        self.token_authority = token_authority

    def _sync_claims(self, user: UserAccount, role: Role) -> None:
        self.token_authority.sync_claims(user.id, {"role": role.value, "username": user.username})

    def create_user(
        self,
        username: str,
        pin: str,
        display_name: str,
        role: Role = Role.USER,
        created_by: str = "system",
    ) -> UserAccount:
        uid = normalize_username(username)
        if self.user_store.get(uid) is not None:
            raise DuplicateUsername()

        user = self.user_store.create(
            uid=uid,
            username=uid,
            display_name=display_name or username,
            pin_hash=hash_pin(pin),
            role=role,
            created_by=created_by,
        )
        self._sync_claims(user, role)
        log.info(f"Created user '{uid}' with role '{role.value}' (by {created_by})")
        return user.to_account()

    def get_user(self, uid: str) -> UserAccount:
        user = self.user_store.get(uid)
        if user is None:
            raise UserNotFound()
        return user.to_account()

    def list_active_users(self) -> List[UserAccount]:
        return [user.to_account() for user in self.user_store.list_active()]

    def unknown_user_ids(self, uids: Iterable[str]) -> Set[str]:
        """Ids that do not name an active user."""
        wanted = set(uids)
        return wanted - self.user_store.active_ids(wanted)

    def update_role(self, uid: str, new_role: Role) -> UserAccount:
        user = self.get_user(uid)
        self.user_store.set_role(uid, new_role)
        self._sync_claims(user, new_role)
        log.info(f"Role of '{uid}' changed from '{user.role.value}' to '{new_role.value}'")
        user.role = new_role
        return user

    def reset_pin(self, uid: str, new_pin: str) -> None:
        """Rehash the PIN and clear any lockout so a forgotten PIN never leaves the account locked."""
        if not self.user_store.set_pin_hash(uid, hash_pin(new_pin)):
            raise UserNotFound()
        log.info(f"PIN reset for '{uid}'")

    def deactivate_user(self, uid: str) -> None:
        """Soft delete. The record stays so audit entries keep resolving."""
        if not self.user_store.deactivate(uid):
            raise UserNotFound()
        log.info(f"Deactivated user '{uid}'")
