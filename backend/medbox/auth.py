"""Request authentication and role/ownership guards."""

import logging
from typing import Annotated, Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from medbox.config import settings
from medbox.constants.enums import Role
from medbox.dependencies import get_token_authority, get_user_store
from medbox.errors import CannotSelfDeactivate, Forbidden, MissingToken
from medbox.models.box import MedicationBox
from medbox.schemas.auth import Identity
from medbox.services.token_authority import TokenAuthority
from medbox.stores.base import UserStore

log = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def identity_from_claims(claims: Dict[str, Any], allow_legacy_role: bool = True) -> Identity:
    """
    Build the caller identity from verified claims.

    Tokens issued before roles were embedded have no role claim; they are
    treated as standard users while allow_legacy_role is set. An unrecognised
    role value is never downgraded silently.
    """
    uid = claims["uid"]
    username = claims.get("username") or claims.get("name") or uid

    raw_role = claims.get("role")
    if raw_role is None:
        if not allow_legacy_role:
            raise Forbidden("Token carries no role claim")
        role = Role.USER
    else:
        try:
            role = Role(raw_role)
        except ValueError:
            log.warning(f"Rejected token for '{uid}' with unknown role claim {raw_role!r}")
            raise Forbidden("Unknown role")

    return Identity(uid=uid, username=username, role=role)


def get_current_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    token_authority: Annotated[TokenAuthority, Depends(get_token_authority)],
) -> Identity:
    """Verify the Authorization: Bearer token and return who is calling."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise MissingToken()

    claims = token_authority.verify(credentials.credentials)
    return identity_from_claims(claims, allow_legacy_role=settings.allow_legacy_role_claim)


def require_role(identity: Identity, role: Role) -> None:
    if identity.role != role:
        raise Forbidden(f"{role.value.capitalize()} access required")


def require_admin(
    identity: Annotated[Identity, Depends(get_current_identity)],
    user_store: Annotated[UserStore, Depends(get_user_store)],
) -> Identity:
    """
    Admin-only gate. The token must carry the admin role and the stored
    account must still be an active admin, so a demotion or deactivation
    revokes admin access before the token expires.
    """
    require_role(identity, Role.ADMIN)

    stored = user_store.get(identity.uid)
    if stored is None or not stored.is_active or stored.role != Role.ADMIN:
        log.warning(f"Admin token for '{identity.uid}' no longer matches an active admin account")
        raise Forbidden("Admin access revoked")
    return identity


def ensure_box_access(identity: Identity, box: MedicationBox) -> None:
    """Non-admins may only touch boxes they are assigned to."""
    if not identity.is_admin and identity.uid not in box.assigned_to:
        raise Forbidden()


def ensure_not_self(identity: Identity, target_uid: str) -> None:
    if identity.uid == target_uid:
        raise CannotSelfDeactivate()


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
AdminIdentity = Annotated[Identity, Depends(require_admin)]
