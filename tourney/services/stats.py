"""Aggregate counts for the public site, admins and members."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tourney.models import Registration, RegistrationStatus, Tournament, TournamentStatus, User
from tourney.models.base import as_utc, utcnow


def _now(now: Optional[datetime]) -> datetime:
    return as_utc(now or utcnow()).replace(tzinfo=None)


async def _count(session: AsyncSession, q) -> int:
    return (await session.execute(q)).scalar_one()


async def registration_stats(session: AsyncSession) -> dict:
    total = await _count(session, select(func.count(Registration.id)))
    active = await _count(
        session,
        select(func.count(Registration.id)).where(
            Registration.status.in_((RegistrationStatus.CONFIRMED.value, RegistrationStatus.PENDING.value))
        ),
    )
    cancelled = await _count(
        session,
        select(func.count(Registration.id)).where(Registration.status == RegistrationStatus.CANCELLED.value),
    )
    return {
        "total": total,
        "active": active,
        "cancelled": cancelled,
        "cancellation_rate": round(cancelled / total * 100, 2) if total else 0,
    }


async def site_stats(session: AsyncSession, now: Optional[datetime] = None) -> dict:
    """Public counters shown on the landing page."""
    now = _now(now)
    upcoming = await _count(
        session,
        select(func.count(Tournament.id)).where(
            Tournament.date >= now,
            Tournament.status.in_((TournamentStatus.PLANNED.value, TournamentStatus.REGISTRATION_OPEN.value)),
        ),
    )
    return {
        "total_members": await _count(session, select(func.count(User.id))),
        "total_tournaments": await _count(session, select(func.count(Tournament.id))),
        "upcoming_tournaments": upcoming,
        "completed_tournaments": await _count(
            session,
            select(func.count(Tournament.id)).where(Tournament.status == TournamentStatus.COMPLETED.value),
        ),
        "total_games": await _count(session, select(func.count(distinct(func.lower(Tournament.game))))),
    }


async def tournament_stats(session: AsyncSession, now: Optional[datetime] = None) -> dict:
    now = _now(now)
    total = await _count(session, select(func.count(Tournament.id)))
    upcoming = await _count(session, select(func.count(Tournament.id)).where(Tournament.date > now))
    total_registrations = await _count(session, select(func.count(Registration.id)))
    return {
        "total_tournaments": total,
        "upcoming_tournaments": upcoming,
        "past_tournaments": total - upcoming,
        "total_registrations": total_registrations,
        "average_participants": round(total_registrations / total, 1) if total else 0,
    }


async def general_stats(session: AsyncSession, now: Optional[datetime] = None) -> dict:
    """Admin dashboard: users, tournaments, registrations."""
    now = _now(now)
    users_total = await _count(session, select(func.count(User.id)))
    users_active = await _count(session, select(func.count(User.id)).where(User.is_active == True))  # noqa: E712
    admins = await _count(session, select(func.count(User.id)).where(User.role == "admin"))
    tournaments_total = await _count(session, select(func.count(Tournament.id)))
    upcoming = await _count(session, select(func.count(Tournament.id)).where(Tournament.date > now))
    return {
        "users": {
            "total": users_total,
            "active": users_active,
            "admins": admins,
            "inactive": users_total - users_active,
        },
        "tournaments": {
            "total": tournaments_total,
            "upcoming": upcoming,
            "past": tournaments_total - upcoming,
        },
        "registrations": await registration_stats(session),
    }


async def member_stats(session: AsyncSession, user: User, now: Optional[datetime] = None) -> dict:
    now = _now(now)
    joined = await _count(
        session,
        select(func.count(Registration.id)).where(
            Registration.user_id == user.id,
            Registration.status.in_((RegistrationStatus.CONFIRMED.value, RegistrationStatus.COMPLETED.value)),
        ),
    )
    upcoming = await _count(
        session,
        select(func.count(Registration.id))
        .join(Tournament, Registration.tournament_id == Tournament.id)
        .where(
            Registration.user_id == user.id,
            Registration.status == RegistrationStatus.CONFIRMED.value,
            Tournament.date > now,
        ),
    )
    return {
        "tournaments_joined": joined,
        "upcoming_tournaments": upcoming,
        "member_since": user.created_at.isoformat() if user.created_at else None,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }
