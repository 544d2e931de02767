import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from medbox.errors import AccountDisabled, AccountLocked, InvalidCredentials
from medbox.services.token_authority import TokenAuthority
from medbox.stores.base import UserAccount, UserRecord, UserStore
from medbox.utils.pin_hash import normalize_username, verify_pin

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)


@dataclass
class LoginResult:
    user: UserAccount
    token: str


class LoginAuthenticator:
    """
    Validates username + PIN against the credential store and enforces lockout.

    Lockout is derived from (failed_attempts, last_failed_at): once the counter
    reaches max_attempts the account rejects every PIN until lockout_duration
    has passed since the last failure. Expiry is lazy; the counter is reset on
    the first attempt after the window closes, and that attempt is then
    validated like any other.
    """

    def __init__(
        self,
        user_store: UserStore,
        token_authority: TokenAuthority,
        max_attempts: int = MAX_ATTEMPTS,
        lockout_duration: timedelta = LOCKOUT_DURATION,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.user_store = user_store
        self.token_authority = token_authority
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _lockout_minutes(self) -> int:
        return math.ceil(self.lockout_duration.total_seconds() / 60)

    def _check_lockout(self, user: UserRecord, now: datetime) -> None:
        if user.failed_attempts < self.max_attempts:
            return

        last_failed = user.last_failed_at or datetime.fromtimestamp(0, timezone.utc)
        lockout_expiry = last_failed + self.lockout_duration
        if now < lockout_expiry:
            remaining_seconds = math.ceil((lockout_expiry - now).total_seconds())
            log.warning(f"Login rejected for locked account '{user.id}' ({remaining_seconds}s remaining)")
            raise AccountLocked(remaining_seconds)

        log.info(f"Lockout expired for '{user.id}', resetting failed attempts")
        self.user_store.reset_failed_attempts(user.id, clear_last_failed=False)
        user.failed_attempts = 0

    def login(self, username: str, pin: str) -> LoginResult:
        uid = normalize_username(username)
        user = self.user_store.get(uid)

        if user is None:
            log.info(f"Login failed for unknown username '{uid}'")
            raise InvalidCredentials()

        if not user.is_active:
            log.info(f"Login rejected for deactivated account '{uid}'")
            raise AccountDisabled()

        now = self._clock()
        self._check_lockout(user, now)

        if not verify_pin(pin, user.pin_hash):
            attempts = self.user_store.record_failed_attempt(uid, now, self.max_attempts)
            remaining = self.max_attempts - attempts
            if remaining <= 0:
                log.warning(f"Account '{uid}' locked after {attempts} failed attempts")
                raise AccountLocked(
                    math.ceil(self.lockout_duration.total_seconds()),
                    message=(
                        "Account locked. Too many failed attempts. "
                        f"Try again in {self._lockout_minutes()} minutes."
                    ),
                )
            log.info(f"Invalid PIN for '{uid}', {remaining} attempt(s) remaining")
            raise InvalidCredentials(f"Invalid username or PIN. {remaining} attempt(s) remaining.")

        self.user_store.reset_failed_attempts(uid)
        token = self.token_authority.mint(uid, {"role": user.role.value, "username": user.username})

        user.failed_attempts = 0
        user.last_failed_at = None
        log.info(f"User '{uid}' logged in")
        return LoginResult(user=user.to_account(), token=token)
