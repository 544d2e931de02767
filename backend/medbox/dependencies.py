"""Reusable FastAPI dependencies and the singletons they hand out."""

from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.orm import sessionmaker

from medbox.config import Settings, settings
from medbox.services.login import LoginAuthenticator
from medbox.services.token_authority import JwtTokenAuthority, TokenAuthority
from medbox.services.user_admin import UserAdministration
from medbox.stores.base import UserStore
from medbox.stores.sql_user_store import SqlUserStore


def build_user_store(session_factory: sessionmaker) -> UserStore:
    return SqlUserStore(session_factory)


def build_token_authority(config: Settings) -> TokenAuthority:
    return JwtTokenAuthority(
        secret_key=config.secret_key,
        algorithm=config.algorithm,
        expires_delta=timedelta(minutes=config.access_token_expire_minutes),
        issuer=config.token_issuer,
    )


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_token_authority(request: Request) -> TokenAuthority:
    return request.app.state.token_authority


def get_login_authenticator(
    user_store: UserStore = Depends(get_user_store),
    token_authority: TokenAuthority = Depends(get_token_authority),
) -> LoginAuthenticator:
    return LoginAuthenticator(
        user_store,
        token_authority,
        max_attempts=settings.max_login_attempts,
        lockout_duration=timedelta(minutes=settings.lockout_minutes),
    )


def get_user_admin(
    user_store: UserStore = Depends(get_user_store),
    token_authority: TokenAuthority = Depends(get_token_authority),
) -> UserAdministration:
    return UserAdministration(user_store, token_authority)
