"""Auth API routes: account creation, login, current user, profile."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_, select

import config
from tourney.messages import message
from tourney.models import User
from tourney.models.base import async_session_factory, utcnow
from web.api.utils import ok, user_payload
from web.auth import (
    create_access_token,
    get_current_user,
    hash_password,
    require_user,
    verify_password,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str
    email: Optional[str] = Field(None, max_length=254)
    display_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=254)
    password: Optional[str] = None


def _token_payload(user: User) -> dict:
    return {
        "access_token": create_access_token(user.username, user.role),
        "token_type": "bearer",
        "user": user_payload(user),
    }


def _check_password(password: str) -> None:
    if len(password) < config.MIN_PASSWORD_LENGTH:
        raise HTTPException(400, message("password too short", min=config.MIN_PASSWORD_LENGTH))


@router.post("/register", status_code=201)
async def signup(body: SignupRequest):
    """Create a member account and return a JWT."""
    _check_password(body.password)
    email = body.email.strip().lower() if body.email else None
    async with async_session_factory() as session:
        clauses = [User.username == body.username]
        if email:
            clauses.append(User.email == email)
        existing = await session.execute(select(User).where(or_(*clauses)))
        if existing.scalars().first():
            raise HTTPException(400, message("account taken"))
        user = User(
            username=body.username,
            email=email,
            display_name=body.display_name or body.username,
            password_hash=hash_password(body.password),
            role="member",
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return ok(_token_payload(user), message("account created"))


@router.post("/login")
async def login(body: LoginRequest):
    """Authenticate and return JWT."""
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == body.username))
        user = result.scalar_one_or_none()
        if not user or not verify_password(body.password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message("invalid credentials"))
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message("account disabled"))
        user.last_login = utcnow()
        await session.commit()
        return ok(_token_payload(user))


@router.get("/me")
async def get_me(user: User = Depends(require_user)):
    """Get current authenticated user."""
    return ok(user_payload(user))


@router.get("/me/optional")
async def get_me_optional(user: Optional[User] = Depends(get_current_user)):
    """Get current user if logged in, else null. For frontend auth check."""
    return ok(user_payload(user) if user else None)


@router.put("/profile")
async def update_profile(body: ProfileUpdate, user: User = Depends(require_user)):
    async with async_session_factory() as session:
        db_user = await session.get(User, user.id)
        if body.display_name is not None:
            db_user.display_name = body.display_name.strip() or db_user.display_name
        if body.email is not None:
            email = body.email.strip().lower() or None
            if email:
                taken = await session.execute(select(User.id).where(User.email == email, User.id != user.id))
                if taken.first():
                    raise HTTPException(400, message("account taken"))
            db_user.email = email
        if body.password is not None:
            _check_password(body.password)
            db_user.password_hash = hash_password(body.password)
        await session.commit()
        await session.refresh(db_user)
        return ok(user_payload(db_user), message("profile updated"))
