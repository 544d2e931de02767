"""SQLAlchemy-backed credential store."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional, Set

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from medbox.constants.enums import Role
from medbox.errors import DuplicateUsername, UpstreamUnavailable
from medbox.models.user import User, utcnow
from medbox.stores.base import UserRecord, UserStore

log = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; every timestamp is written in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        pin_hash=user.pin_hash,
        role=Role(user.role),
        failed_attempts=user.failed_attempts or 0,
        last_failed_at=_as_utc(user.last_failed_at),
        is_active=user.is_active,
        created_by=user.created_by,
        created_at=_as_utc(user.created_at),
        updated_at=_as_utc(user.updated_at),
    )


class SqlUserStore(UserStore):
    """
    Credential store that opens one short session per operation.

    Built once at startup with a session factory, so it holds no per-request state.
    Driver timeouts and pool exhaustion are surfaced as UpstreamUnavailable.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except (OperationalError, PoolTimeoutError) as exc:
            session.rollback()
            log.error(f"User store unavailable: {exc}")
            raise UpstreamUnavailable() from exc
        finally:
            session.close()

    def get(self, uid: str) -> Optional[UserRecord]:
        with self._session() as session:
            user = session.get(User, uid)
            return _to_record(user) if user else None

    def create(
        self,
        uid: str,
        username: str,
        display_name: str,
        pin_hash: str,
        role: Role,
        created_by: str,
    ) -> UserRecord:
        with self._session() as session:
            user = User(
                id=uid,
                username=username,
                display_name=display_name,
                pin_hash=pin_hash,
                role=role.value,
                failed_attempts=0,
                last_failed_at=None,
                is_active=True,
                created_by=created_by,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                # Lost a race against a concurrent create for the same username
                session.rollback()
                raise DuplicateUsername() from exc
            session.refresh(user)
            return _to_record(user)

    def list_active(self) -> List[UserRecord]:
        with self._session() as session:
            users = session.scalars(
                select(User).where(User.is_active.is_(True)).order_by(User.username)
            ).all()
            return [_to_record(user) for user in users]

    def active_ids(self, uids: Iterable[str]) -> Set[str]:
        wanted = set(uids)
        if not wanted:
            return set()
        with self._session() as session:
            found = session.scalars(
                select(User.id).where(User.id.in_(wanted), User.is_active.is_(True))
            ).all()
            return set(found)

    def _update(self, uid: str, **values) -> bool:
        with self._session() as session:
            result = session.execute(
                update(User)
                .where(User.id == uid)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount > 0

    def set_role(self, uid: str, role: Role) -> bool:
        return self._update(uid, role=role.value, updated_at=utcnow())

    def set_pin_hash(self, uid: str, pin_hash: str) -> bool:
        return self._update(
            uid,
            pin_hash=pin_hash,
            failed_attempts=0,
            last_failed_at=None,
            updated_at=utcnow(),
        )

    def deactivate(self, uid: str) -> bool:
        return self._update(uid, is_active=False, updated_at=utcnow())

    def record_failed_attempt(self, uid: str, at: datetime, max_attempts: int) -> int:
        with self._session() as session:
            # Single UPDATE so concurrent failures never read-modify-write in Python
            session.execute(
                update(User)
                .where(User.id == uid)
                .values(
                    failed_attempts=case(
                        (User.failed_attempts < max_attempts, User.failed_attempts + 1),
                        else_=max_attempts,
                    ),
                    last_failed_at=at,
                    updated_at=User.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            count = session.scalar(select(User.failed_attempts).where(User.id == uid))
            session.commit()
            return count or 0

    def reset_failed_attempts(self, uid: str, clear_last_failed: bool = True) -> None:
        values = {"failed_attempts": 0, "updated_at": User.updated_at}
        if clear_last_failed:
            values["last_failed_at"] = None
        self._update(uid, **values)
