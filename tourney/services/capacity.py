"""Capacity policy: decides whether a member may take a place in a tournament.

Pure functions over already-loaded records. Nothing here touches the
database, so a decision can be recomputed any number of times.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tourney.models import Registration, Tournament, TournamentStatus
from tourney.models.base import as_utc, utcnow

FULL = "full"
ALREADY_REGISTERED = "already registered"
DEADLINE_PASSED = "deadline passed"
ALREADY_OCCURRED = "tournament already occurred"
NOT_OPEN = "registrations not open"
NOT_FULL = "not full"


@dataclass(frozen=True)
class RegistrationDecision:
    admit: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.admit


ADMIT = RegistrationDecision(admit=True)


def _blocking(existing: Optional[Registration], member_id: int) -> bool:
    return existing is not None and existing.user_id == member_id and existing.is_active


def _schedule_checks(tournament: Tournament, now: datetime) -> Optional[str]:
    deadline = as_utc(tournament.registration_deadline)
    if deadline is not None and now > deadline:
        return DEADLINE_PASSED
    if now > as_utc(tournament.date):
        return ALREADY_OCCURRED
    if tournament.status != TournamentStatus.REGISTRATION_OPEN.value:
        return NOT_OPEN
    return None


def can_register(
    tournament: Tournament,
    member_id: int,
    existing: Optional[Registration] = None,
    now: Optional[datetime] = None,
) -> RegistrationDecision:
    """Check, in order: full, already registered, deadline, past date, status.

    The first failing check wins; callers map the reason to a message.
    """
    now = as_utc(now) or utcnow()
    if tournament.current_players >= tournament.max_players:
        return RegistrationDecision(False, FULL)
    if _blocking(existing, member_id):
        return RegistrationDecision(False, ALREADY_REGISTERED)
    reason = _schedule_checks(tournament, now)
    if reason:
        return RegistrationDecision(False, reason)
    return ADMIT


def can_join_waitlist(
    tournament: Tournament,
    member_id: int,
    existing: Optional[Registration] = None,
    now: Optional[datetime] = None,
) -> RegistrationDecision:
    """Same checks as can_register, except the tournament must be full."""
    now = as_utc(now) or utcnow()
    if tournament.current_players < tournament.max_players:
        return RegistrationDecision(False, NOT_FULL)
    if _blocking(existing, member_id):
        return RegistrationDecision(False, ALREADY_REGISTERED)
    reason = _schedule_checks(tournament, now)
    if reason:
        return RegistrationDecision(False, reason)
    return ADMIT
