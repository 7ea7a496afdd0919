"""Registration service: register, unregister, waiting list and per-registration actions.

Every mutating call ends with one commit. The seat itself is claimed with a
conditional UPDATE so two concurrent requests can never push
current_players past max_players, whatever the policy saw beforehand.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tourney import errors
from tourney.models import Registration, RegistrationStatus, Tournament
from tourney.models.base import utcnow
from tourney.services import capacity
from tourney.services.reconcile import sync_player_count

logger = logging.getLogger("tourney.registrations")

_REASON_ERRORS = {
    capacity.FULL: errors.CapacityExceeded,
    capacity.ALREADY_REGISTERED: errors.Conflict,
}


def raise_for(decision: capacity.RegistrationDecision) -> None:
    """Turn a rejected decision into the matching domain error."""
    exc_cls = _REASON_ERRORS.get(decision.reason, errors.PolicyRejected)
    raise exc_cls(decision.reason)


async def get_tournament(session: AsyncSession, tournament_id: int) -> Tournament:
    t = await session.get(Tournament, tournament_id)
    if not t:
        raise errors.NotFound("tournament not found")
    return t


async def find_registration(session: AsyncSession, member_id: int, tournament_id: int) -> Optional[Registration]:
    """The member's row for this tournament, whatever its status."""
    result = await session.execute(
        select(Registration).where(
            Registration.user_id == member_id,
            Registration.tournament_id == tournament_id,
        )
    )
    return result.scalar_one_or_none()


async def get_registration(session: AsyncSession, registration_id: int) -> Registration:
    """Load a registration with its tournament and member attached."""
    result = await session.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .options(selectinload(Registration.tournament), selectinload(Registration.member))
        .execution_options(populate_existing=True)
    )
    registration = result.scalar_one_or_none()
    if not registration:
        raise errors.NotFound("registration not found")
    return registration


async def _claim_seat(session: AsyncSession, tournament: Tournament) -> bool:
    result = await session.execute(
        update(Tournament)
        .where(Tournament.id == tournament.id, Tournament.current_players < Tournament.max_players)
        .values(current_players=Tournament.current_players + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _activate(
    existing: Optional[Registration],
    tournament: Tournament,
    member_id: int,
    status: RegistrationStatus,
    notes: Optional[str],
    now: datetime,
) -> Registration:
    """Reuse a cancelled row for this member, or build a new one."""
    if existing is not None:
        existing.status = status.value
        existing.registered_at = now
        existing.checked_in = False
        existing.checked_in_at = None
        if notes is not None:
            existing.notes = notes
        return existing
    return Registration(
        user_id=member_id,
        tournament_id=tournament.id,
        registered_at=now,
        status=status.value,
        notes=notes,
    )


async def _commit(session: AsyncSession, action: str) -> None:
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise errors.Conflict(capacity.ALREADY_REGISTERED) from None
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Storage failure during %s", action)
        raise errors.Unexpected() from e


async def register(
    session: AsyncSession,
    tournament_id: int,
    member_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Registration:
    """Register member for tournament. Raises a TourneyError subclass on rejection."""
    now = now or utcnow()
    tournament = await get_tournament(session, tournament_id)
    await sync_player_count(session, tournament)
    existing = await find_registration(session, member_id, tournament_id)
    decision = capacity.can_register(tournament, member_id, existing, now)
    if not decision:
        logger.info("Registration of member %s to tournament %s refused: %s", member_id, tournament_id, decision.reason)
        await session.commit()
        raise_for(decision)

    if not await _claim_seat(session, tournament):
        await session.rollback()
        raise errors.CapacityExceeded()
    registration = _activate(existing, tournament, member_id, RegistrationStatus.CONFIRMED, notes, now)
    session.add(registration)
    await sync_player_count(session, tournament)
    await _commit(session, "register")
    logger.info(
        "Member %s registered to tournament %s (%s/%s)",
        member_id, tournament_id, tournament.current_players, tournament.max_players,
    )
    return await get_registration(session, registration.id)


async def join_waitlist(
    session: AsyncSession,
    tournament_id: int,
    member_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Registration:
    """Queue member for a full tournament. The registration holds no place until promoted."""
    now = now or utcnow()
    tournament = await get_tournament(session, tournament_id)
    await sync_player_count(session, tournament)
    existing = await find_registration(session, member_id, tournament_id)
    decision = capacity.can_join_waitlist(tournament, member_id, existing, now)
    if not decision:
        await session.commit()
        raise_for(decision)
    registration = _activate(existing, tournament, member_id, RegistrationStatus.WAITLISTED, notes, now)
    session.add(registration)
    await _commit(session, "join_waitlist")
    logger.info("Member %s waitlisted on tournament %s", member_id, tournament_id)
    return await get_registration(session, registration.id)


async def promote_waitlist(session: AsyncSession, tournament: Tournament) -> list[Registration]:
    """Confirm waitlisted registrations, earliest first, while places are free.

    The capacity policy is not consulted: a waitlisted member already passed
    it when joining. Does not commit.
    """
    count = await sync_player_count(session, tournament)
    free = tournament.max_players - count
    if free <= 0:
        return []
    result = await session.execute(
        select(Registration)
        .where(
            Registration.tournament_id == tournament.id,
            Registration.status == RegistrationStatus.WAITLISTED.value,
        )
        .order_by(Registration.registered_at, Registration.id)
        .limit(free)
    )
    promoted = list(result.scalars().all())
    for registration in promoted:
        registration.status = RegistrationStatus.CONFIRMED.value
        logger.info("Promoted member %s from waiting list of tournament %s", registration.user_id, tournament.id)
    if promoted:
        await sync_player_count(session, tournament)
    return promoted


async def unregister(session: AsyncSession, tournament_id: int, member_id: int) -> Registration:
    """Remove the member's active registration, recount, then fill the freed place from the waiting list."""
    tournament = await get_tournament(session, tournament_id)
    registration = await find_registration(session, member_id, tournament_id)
    if registration is None or not registration.is_active:
        raise errors.NotFound("registration not found")
    await session.delete(registration)
    await sync_player_count(session, tournament)
    await promote_waitlist(session, tournament)
    await _commit(session, "unregister")
    logger.info(
        "Member %s unregistered from tournament %s (%s/%s)",
        member_id, tournament_id, tournament.current_players, tournament.max_players,
    )
    return registration


async def cancel(session: AsyncSession, registration_id: int) -> Registration:
    """Soft-cancel: keep the row with status cancelled. Frees the place like unregister."""
    registration = await get_registration(session, registration_id)
    if not registration.is_active:
        raise errors.PolicyRejected("registration cancelled")
    registration.status = RegistrationStatus.CANCELLED.value
    registration.checked_in = False
    registration.checked_in_at = None
    await promote_waitlist(session, registration.tournament)
    await _commit(session, "cancel")
    logger.info("Registration %s cancelled", registration_id)
    return await get_registration(session, registration_id)


async def confirm(session: AsyncSession, registration_id: int) -> Registration:
    """pending -> confirmed. A waitlisted registration needs a free place."""
    registration = await get_registration(session, registration_id)
    if registration.status == RegistrationStatus.CONFIRMED.value:
        return registration
    if registration.status == RegistrationStatus.WAITLISTED.value:
        tournament = registration.tournament
        await sync_player_count(session, tournament)
        if not await _claim_seat(session, tournament):
            await session.rollback()
            raise errors.CapacityExceeded()
    elif registration.status != RegistrationStatus.PENDING.value:
        raise errors.PolicyRejected("not seat holding")
    registration.status = RegistrationStatus.CONFIRMED.value
    await sync_player_count(session, registration.tournament)
    await _commit(session, "confirm")
    return await get_registration(session, registration_id)


async def check_in(session: AsyncSession, registration_id: int, now: Optional[datetime] = None) -> Registration:
    registration = await get_registration(session, registration_id)
    if not registration.holds_seat:
        raise errors.PolicyRejected("not seat holding")
    registration.checked_in = True
    registration.checked_in_at = now or utcnow()
    await _commit(session, "check_in")
    return await get_registration(session, registration_id)


async def record_result(
    session: AsyncSession,
    registration_id: int,
    position: Optional[int] = None,
    points: Optional[int] = None,
    wins: Optional[int] = None,
    losses: Optional[int] = None,
    draws: Optional[int] = None,
    prize: Optional[str] = None,
) -> Registration:
    registration = await get_registration(session, registration_id)
    if not registration.holds_seat:
        raise errors.PolicyRejected("not seat holding")
    if position is not None and position < 1:
        raise errors.ValidationError("invalid data")
    for field, value in (
        ("position", position),
        ("points", points),
        ("wins", wins),
        ("losses", losses),
        ("draws", draws),
        ("prize", prize),
    ):
        if value is not None:
            setattr(registration, field, value)
    await _commit(session, "record_result")
    return await get_registration(session, registration_id)


async def leave_feedback(
    session: AsyncSession, registration_id: int, rating: int, comment: Optional[str] = None
) -> Registration:
    if not 1 <= rating <= 5:
        raise errors.ValidationError("invalid data")
    registration = await get_registration(session, registration_id)
    if not registration.is_active:
        raise errors.PolicyRejected("registration cancelled")
    registration.rating = rating
    registration.comment = comment
    await _commit(session, "leave_feedback")
    return await get_registration(session, registration_id)


async def list_for_tournament(
    session: AsyncSession, tournament_id: int, status: Optional[str] = None
) -> list[Registration]:
    await get_tournament(session, tournament_id)
    q = (
        select(Registration)
        .where(Registration.tournament_id == tournament_id)
        .options(selectinload(Registration.member), selectinload(Registration.tournament))
        .order_by(Registration.registered_at, Registration.id)
    )
    if status:
        q = q.where(Registration.status == status)
    result = await session.execute(q)
    return list(result.scalars().all())


async def list_for_member(session: AsyncSession, member_id: int) -> list[Registration]:
    result = await session.execute(
        select(Registration)
        .where(Registration.user_id == member_id)
        .options(selectinload(Registration.tournament), selectinload(Registration.member))
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())
