import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from medbox import models  # noqa: E402,F401
from medbox.constants.enums import Role  # noqa: E402
from medbox.database import Base, SessionLocal, engine  # noqa: E402
from medbox.main import app  # noqa: E402
from medbox.services.login import LoginAuthenticator  # noqa: E402
from medbox.services.token_authority import JwtTokenAuthority  # noqa: E402
from medbox.services.user_admin import UserAdministration  # noqa: E402
from medbox.stores.sql_user_store import SqlUserStore  # noqa: E402


class FrozenClock:
    """Manually advanced clock for lockout tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingTokenAuthority(JwtTokenAuthority):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.synced = []

    def sync_claims(self, uid, claims):
        self.synced.append((uid, dict(claims)))


@pytest.fixture(autouse=True)
def prepare_database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_store() -> SqlUserStore:
    return SqlUserStore(SessionLocal)


@pytest.fixture
def token_authority() -> RecordingTokenAuthority:
    return RecordingTokenAuthority("test-secret", issuer="medbox")


@pytest.fixture
def user_admin(user_store, token_authority) -> UserAdministration:
    return UserAdministration(user_store, token_authority)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def authenticator(user_store, token_authority, clock) -> LoginAuthenticator:
    return LoginAuthenticator(user_store, token_authority, clock=clock)


@pytest.fixture
def client(user_store, token_authority) -> TestClient:
    saved = (app.state.user_store, app.state.token_authority)
    app.state.user_store = user_store
    app.state.token_authority = token_authority
    try:
        yield TestClient(app)
    finally:
        app.state.user_store, app.state.token_authority = saved


@pytest.fixture
def make_user(user_admin):
    def _make_user(username: str, pin: str = "1234", role: Role = Role.USER, display_name: str = None):
        return user_admin.create_user(
            username=username,
            pin=pin,
            display_name=display_name or username.capitalize(),
            role=role,
            created_by="tests",
        )
    return _make_user


@pytest.fixture
def auth_headers(token_authority):
    def _auth_headers(user) -> dict:
        token = token_authority.mint(user.id, {"role": user.role.value, "username": user.username})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def admin(make_user):
    return make_user("boss", pin="4321", role=Role.ADMIN, display_name="Head Nurse")


@pytest.fixture
def admin_headers(admin, auth_headers) -> dict:
    return auth_headers(admin)
