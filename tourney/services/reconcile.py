"""Reconciliation of Tournament.current_players against the registrations table."""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tourney.models import SEAT_HOLDING_STATUSES, Registration, Tournament

logger = logging.getLogger("tourney.reconcile")


async def count_seat_holders(session: AsyncSession, tournament_id: int) -> int:
    result = await session.execute(
        select(func.count(Registration.id)).where(
            Registration.tournament_id == tournament_id,
            Registration.status.in_(SEAT_HOLDING_STATUSES),
        )
    )
    return result.scalar_one()


async def sync_player_count(session: AsyncSession, tournament: Tournament) -> int:
    """Recount one tournament and write the result to the session. Does not commit."""
    await session.flush()
    count = await count_seat_holders(session, tournament.id)
    if tournament.current_players != count:
        tournament.current_players = count
        await session.flush()
    return count


async def reconcile_player_counts(session: AsyncSession, tournaments: Iterable[Tournament]) -> int:
    """Fix every stored count that differs from the registrations table.

    One grouped query for all tournaments. Returns how many were repaired and
    commits only when something changed.
    """
    tournaments = list(tournaments)
    if not tournaments:
        return 0
    ids = [t.id for t in tournaments]
    result = await session.execute(
        select(Registration.tournament_id, func.count(Registration.id))
        .where(
            Registration.tournament_id.in_(ids),
            Registration.status.in_(SEAT_HOLDING_STATUSES),
        )
        .group_by(Registration.tournament_id)
    )
    counts = dict(result.all())
    repaired = 0
    for t in tournaments:
        actual = counts.get(t.id, 0)
        if t.current_players != actual:
            logger.warning(
                "Player count drift on tournament %s: stored %s, actual %s", t.id, t.current_players, actual
            )
            t.current_players = actual
            repaired += 1
    if repaired:
        await session.commit()
    return repaired
