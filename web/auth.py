"""Authentication for web API: JWT, password hashing, role checks, admin seed."""
from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select

import config
from tourney.messages import message
from tourney.models import User
from tourney.models.base import async_session_factory

logger = logging.getLogger("tourney.auth")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def _prepare_password(password: str) -> str:
    """Bcrypt has a 72-byte limit. Pre-hash longer passwords with SHA256."""
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        return hashlib.sha256(encoded).hexdigest()
    return password


def hash_password(password: str) -> str:
    return pwd_context.hash(_prepare_password(password))


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(_prepare_password(plain), hashed)


def create_access_token(username: str, role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=config.JWT_EXPIRE_DAYS)
    payload = {"sub": username, "role": role, "exp": expire}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


async def get_user_by_username(username: str) -> Optional[User]:
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()


async def seed_initial_admin() -> Optional[User]:
    """Create the configured admin account if it does not exist yet. Safe to run on every start.

    Nothing is created unless INITIAL_ADMIN_PASSWORD is set.
    """
    if not config.INITIAL_ADMIN_PASSWORD:
        return None
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == config.INITIAL_ADMIN_USERNAME))
        user = result.scalar_one_or_none()
        if user:
            return user
        user = User(
            username=config.INITIAL_ADMIN_USERNAME,
            email=config.INITIAL_ADMIN_EMAIL,
            display_name="Administrator",
            password_hash=hash_password(config.INITIAL_ADMIN_PASSWORD),
            role="admin",
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        logger.info("Seeded initial admin account %s", user.username)
        return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    x_auth_token: Optional[str] = Header(None, alias="X-Auth-Token"),
) -> Optional[User]:
    """Return current user from JWT, or None if not authenticated. Accepts Authorization: Bearer or X-Auth-Token (fallback for proxies that strip Authorization)."""
    token = None
    if credentials and credentials.credentials:
        token = credentials.credentials
    elif x_auth_token:
        token = x_auth_token
    if not token:
        return None
    payload = decode_token(token)
    if not payload:
        return None
    username = payload.get("sub")
    if not username:
        return None
    user = await get_user_by_username(username)
    if not user or not user.is_active:
        return None
    return user


async def require_user(
    user: Optional[User] = Depends(get_current_user),
) -> User:
    """Require authenticated user. Raises 401 if not logged in."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message("not authenticated"),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_organizer(user: User) -> User:
    """Require organizer or admin role. Raises 403 if insufficient."""
    if user.role not in ("organizer", "admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message("organizer required"))
    return user


def require_admin(user: User) -> User:
    """Require admin role. Raises 403 if insufficient."""
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message("admin required"))
    return user


async def require_organizer_user(
    user: User = Depends(require_user),
) -> User:
    """Dependency: require logged-in organizer or admin."""
    return require_organizer(user)


async def require_admin_user(
    user: User = Depends(require_user),
) -> User:
    """Dependency: require logged-in admin."""
    return require_admin(user)
