"""Bearer token minting and verification."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from medbox.errors import InvalidToken

log = logging.getLogger(__name__)


class TokenAuthority(ABC):
    """Issues signed bearer tokens carrying {uid, role, username} claims."""

    @abstractmethod
    def mint(self, uid: str, claims: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def verify(self, token: str) -> Dict[str, Any]:
        """Return the verified claims, including uid. Raises InvalidToken."""
        pass

    @abstractmethod
    def sync_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        """Record the claim set future tokens for uid must carry."""
        pass


class JwtTokenAuthority(TokenAuthority):
    """
    HS256 JWT authority.

    Claims are embedded at mint time from the caller's current user record, so
    sync_claims has nothing to persist: a role change reaches clients with the
    next token they obtain, and outstanding tokens keep their role until `exp`.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(minutes=60),
        issuer: Optional[str] = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta
        self.issuer = issuer

    def mint(self, uid: str, claims: Dict[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "sub": uid,
            "uid": uid,
            "iat": int(now.timestamp()),
            "exp": int((now + self.expires_delta).timestamp()),
        })
        if self.issuer:
            to_encode["iss"] = self.issuer
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
            )
        except ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired") from exc
        except JWTError as exc:
            log.debug(f"Token verification failed: {exc}")
            raise InvalidToken() from exc

        uid = payload.get("uid") or payload.get("sub")
        if not uid:
            raise InvalidToken()
        payload["uid"] = uid
        return payload

    def sync_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        log.debug(f"Claims for '{uid}' will be embedded at next mint: {claims}")
