"""Tournament management: create, edit, delete, status changes and listing queries."""
from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from tourney import errors
from tourney.models import Registration, RegistrationStatus, Tournament, TournamentStatus, User
from tourney.models.base import as_utc, utcnow
from tourney.services import lifecycle
from tourney.services.reconcile import count_seat_holders, reconcile_player_counts
from tourney.services.registrations import get_tournament, promote_waitlist

logger = logging.getLogger("tourney.tournaments")

EDITABLE_FIELDS = (
    "name",
    "description",
    "game",
    "date",
    "max_players",
    "registration_deadline",
    "entry_fee",
    "is_public",
    "tags",
)


def ensure_can_manage(user: User, tournament: Tournament) -> None:
    """Admins manage every tournament; organizers only their own."""
    if user.role == "admin":
        return
    if user.role == "organizer" and tournament.created_by == user.id:
        return
    raise errors.Forbidden("forbidden")


def _check_capacity(max_players: int, current_players: int = 0) -> None:
    if not config.MIN_CAPACITY <= max_players <= config.MAX_CAPACITY:
        raise errors.ValidationError("capacity out of range", min=config.MIN_CAPACITY, max=config.MAX_CAPACITY)
    if max_players < current_players:
        raise errors.ValidationError("capacity below players", current=current_players)


def _check_fee(entry_fee: Optional[float]) -> None:
    if entry_fee is not None and entry_fee < 0:
        raise errors.ValidationError("negative entry fee")


def _naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    dt = as_utc(dt)
    return dt.replace(tzinfo=None) if dt else None


async def _ensure_unique(session: AsyncSession, name: str, date: datetime, exclude_id: Optional[int] = None) -> None:
    q = select(Tournament.id).where(func.lower(Tournament.name) == name.strip().lower(), Tournament.date == date)
    if exclude_id is not None:
        q = q.where(Tournament.id != exclude_id)
    if (await session.execute(q)).first():
        raise errors.Conflict("duplicate tournament")


async def create_tournament(
    session: AsyncSession,
    creator: User,
    name: str,
    game: str,
    date: datetime,
    max_players: int,
    description: Optional[str] = None,
    registration_deadline: Optional[datetime] = None,
    entry_fee: Optional[float] = None,
    is_public: bool = True,
    tags: Optional[list[str]] = None,
    status: Optional[str] = None,
) -> Tournament:
    _check_capacity(max_players)
    _check_fee(entry_fee)
    status_value = lifecycle.parse_status(status or config.DEFAULT_TOURNAMENT_STATUS).value
    date = _naive_utc(date)
    await _ensure_unique(session, name, date)
    t = Tournament(
        name=name.strip(),
        description=description,
        game=game.strip(),
        date=date,
        max_players=max_players,
        current_players=0,
        status=status_value,
        created_by=creator.id,
        registration_deadline=_naive_utc(registration_deadline),
        entry_fee=entry_fee,
        is_public=is_public,
        tags=[x.strip() for x in (tags or []) if x.strip()],
    )
    session.add(t)
    await session.commit()
    await session.refresh(t)
    logger.info("Tournament %s (%s) created by %s", t.id, t.name, creator.username)
    return t


async def _fill_from_waitlist(session: AsyncSession, t: Tournament) -> None:
    if t.status == TournamentStatus.REGISTRATION_OPEN.value:
        await promote_waitlist(session, t)


async def update_tournament(session: AsyncSession, tournament_id: int, changes: dict[str, Any]) -> Tournament:
    """Apply a partial update. Status goes through the lifecycle state machine."""
    t = await get_tournament(session, tournament_id)
    if "max_players" in changes and changes["max_players"] is not None:
        _check_capacity(changes["max_players"], await count_seat_holders(session, t.id))
    if "entry_fee" in changes:
        _check_fee(changes["entry_fee"])
    for key in ("date", "registration_deadline"):
        if key in changes:
            changes[key] = _naive_utc(changes[key])
    if "name" in changes or "date" in changes:
        await _ensure_unique(session, changes.get("name") or t.name, changes.get("date") or t.date, exclude_id=t.id)
    for key in EDITABLE_FIELDS:
        if key in changes:
            if key in ("name", "game", "date", "max_players", "is_public", "tags") and changes[key] is None:
                continue
            setattr(t, key, changes[key])
    if changes.get("status") is not None:
        lifecycle.transition(t, changes["status"])
    await _fill_from_waitlist(session, t)
    await session.commit()
    await session.refresh(t)
    return t


async def change_status(session: AsyncSession, tournament_id: int, target: str) -> Tournament:
    t = await get_tournament(session, tournament_id)
    previous = t.status
    lifecycle.transition(t, target)
    await _fill_from_waitlist(session, t)
    await session.commit()
    await session.refresh(t)
    logger.info("Tournament %s status %s -> %s", t.id, previous, t.status)
    return t


async def delete_tournament(session: AsyncSession, tournament_id: int) -> str:
    """Delete a tournament with no active registrations. Cancelled rows go with it."""
    t = await get_tournament(session, tournament_id)
    active = await session.execute(
        select(func.count(Registration.id)).where(
            Registration.tournament_id == tournament_id,
            Registration.status != RegistrationStatus.CANCELLED.value,
        )
    )
    if active.scalar_one():
        raise errors.Conflict("tournament has registrations")
    name = t.name
    await session.delete(t)
    await session.commit()
    logger.info("Tournament %s (%s) deleted", tournament_id, name)
    return name


async def _fetch(session: AsyncSession, q) -> list[Tournament]:
    result = await session.execute(q.order_by(Tournament.date, Tournament.id))
    tournaments = list(result.scalars().all())
    await reconcile_player_counts(session, tournaments)
    return tournaments


async def load_tournament(session: AsyncSession, tournament_id: int) -> Tournament:
    """Get one tournament with its player count reconciled."""
    t = await get_tournament(session, tournament_id)
    await reconcile_player_counts(session, [t])
    return t


async def list_tournaments(
    session: AsyncSession,
    game: Optional[str] = None,
    status: Optional[str] = None,
    public_only: bool = False,
) -> list[Tournament]:
    q = select(Tournament)
    if game:
        q = q.where(Tournament.game.ilike(f"%{game.strip()}%"))
    if status:
        q = q.where(Tournament.status == lifecycle.parse_status(status).value)
    if public_only:
        q = q.where(Tournament.is_public == True)  # noqa: E712
    return await _fetch(session, q)


async def list_upcoming(session: AsyncSession, now: Optional[datetime] = None) -> list[Tournament]:
    now = _naive_utc(now or utcnow())
    q = select(Tournament).where(
        Tournament.date > now,
        Tournament.status.in_((TournamentStatus.PLANNED.value, TournamentStatus.REGISTRATION_OPEN.value)),
    )
    return await _fetch(session, q)


async def list_between(session: AsyncSession, start: datetime, end: datetime) -> list[Tournament]:
    q = select(Tournament).where(Tournament.date >= _naive_utc(start), Tournament.date <= _naive_utc(end))
    return await _fetch(session, q)


async def list_next_days(session: AsyncSession, days: int, now: Optional[datetime] = None) -> list[Tournament]:
    now = now or utcnow()
    return await list_between(session, now, now + timedelta(days=days))


async def list_calendar_month(session: AsyncSession, year: int, month: int) -> list[Tournament]:
    """Tournaments dated within the given calendar month (month is 1-12)."""
    if not 1 <= month <= 12:
        raise errors.ValidationError("invalid data")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return await list_between(session, start, end)
