"""User API routes: own registrations and stats; user management for admins."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func, or_, select

from tourney import errors
from tourney.messages import message
from tourney.models import ROLES, User
from tourney.models.base import async_session_factory
from tourney.services import registrations, stats
from web.api.utils import ok, registration_payload, user_payload
from web.auth import require_admin_user, require_user

router = APIRouter(prefix="/api/users", tags=["users"])


class StatusUpdate(BaseModel):
    is_active: bool


class RoleUpdate(BaseModel):
    role: str  # member, organizer, admin


@router.get("/me/registrations")
async def my_registrations(user: User = Depends(require_user)):
    """Current member's registrations, newest first."""
    async with async_session_factory() as session:
        regs = await registrations.list_for_member(session, user.id)
        return ok({"registrations": [registration_payload(r) for r in regs]})


@router.get("/me/stats")
async def my_stats(user: User = Depends(require_user)):
    async with async_session_factory() as session:
        return ok({"stats": await stats.member_stats(session, user)})


@router.get("/stats/general")
async def general_stats(admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        return ok(await stats.general_stats(session))


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    admin: User = Depends(require_admin_user),
):
    """List users, newest first (admin only). ?search= matches username, name or email."""
    async with async_session_factory() as session:
        q = select(User)
        count_q = select(func.count(User.id))
        if search:
            pattern = f"%{search.strip()}%"
            cond = or_(User.username.ilike(pattern), User.display_name.ilike(pattern), User.email.ilike(pattern))
            q = q.where(cond)
            count_q = count_q.where(cond)
        total = (await session.execute(count_q)).scalar_one()
        result = await session.execute(
            q.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset((page - 1) * limit)
        )
        users = result.scalars().all()
        return ok({
            "users": [user_payload(u) for u in users],
            "pagination": {"current": page, "pages": -(-total // limit), "total": total},
        })


@router.get("/{user_id}")
async def get_user(user_id: int, admin: User = Depends(require_admin_user)):
    """User details with registrations and stats (admin only)."""
    async with async_session_factory() as session:
        user = await session.get(User, user_id)
        if not user:
            raise errors.NotFound("user not found")
        regs = await registrations.list_for_member(session, user.id)
        return ok({
            "user": user_payload(user),
            "registrations": [registration_payload(r) for r in regs],
            "stats": await stats.member_stats(session, user),
        })


@router.put("/{user_id}/status")
async def set_user_status(user_id: int, body: StatusUpdate, admin: User = Depends(require_admin_user)):
    """Enable or disable an account (admin only). Admin accounts cannot be disabled."""
    async with async_session_factory() as session:
        user = await session.get(User, user_id)
        if not user:
            raise errors.NotFound("user not found")
        if user.role == "admin" and not body.is_active:
            raise HTTPException(400, message("cannot disable admin"))
        user.is_active = body.is_active
        await session.commit()
        return ok(user_payload(user))


@router.put("/{user_id}/role")
async def set_user_role(user_id: int, body: RoleUpdate, admin: User = Depends(require_admin_user)):
    """Change a user's role (admin only). Cannot change own role."""
    if body.role not in ROLES:
        raise HTTPException(400, message("invalid role"))
    if user_id == admin.id:
        raise HTTPException(400, message("own role"))
    async with async_session_factory() as session:
        user = await session.get(User, user_id)
        if not user:
            raise errors.NotFound("user not found")
        user.role = body.role
        await session.commit()
        return ok(user_payload(user))
