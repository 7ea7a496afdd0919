"""API routes for tournaments and the registration lifecycle."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from tourney import errors
from tourney.messages import message
from tourney.models import Registration, User
from tourney.models.base import async_session_factory
from tourney.services import registrations, stats, tournaments
from tourney.services.lifecycle import allowed_targets
from web.api.utils import ok, registration_payload, tournament_payload
from web.auth import get_current_user, require_admin_user, require_organizer_user, require_user

router = APIRouter(prefix="/api", tags=["tournaments"])


# --- Pydantic schemas ---


def _clean_tags(v):
    if v is None:
        return v
    return [t.strip() for t in v if isinstance(t, str) and t.strip()]


class TournamentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    game: str = Field(min_length=1, max_length=100)
    date: datetime
    max_players: int = Field(ge=2, le=100)
    registration_deadline: Optional[datetime] = None  # ISO datetime, e.g. 2026-02-24T18:00:00Z
    entry_fee: Optional[float] = Field(None, ge=0)
    is_public: bool = True
    tags: list[str] = []
    status: Optional[str] = None  # Default: DEFAULT_TOURNAMENT_STATUS

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    game: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[datetime] = None
    max_players: Optional[int] = Field(None, ge=2, le=100)
    registration_deadline: Optional[datetime] = None  # null to clear
    entry_fee: Optional[float] = Field(None, ge=0)
    is_public: Optional[bool] = None
    tags: Optional[list[str]] = None
    status: Optional[str] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)


class StatusChange(BaseModel):
    status: str


class RegisterRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class ResultUpdate(BaseModel):
    position: Optional[int] = Field(None, ge=1)
    points: Optional[int] = None
    wins: Optional[int] = Field(None, ge=0)
    losses: Optional[int] = Field(None, ge=0)
    draws: Optional[int] = Field(None, ge=0)
    prize: Optional[str] = Field(None, max_length=200)


class FeedbackRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


# --- Tournaments: collection views (declared before /{tournament_id}) ---


@router.get("/tournaments")
async def list_tournaments(
    game: Optional[str] = None, status: Optional[str] = None, user: Optional[User] = Depends(get_current_user)
):
    """List tournaments by date. Filters: ?game= (substring, case-insensitive), ?status=. Anonymous callers see public ones only."""
    async with async_session_factory() as session:
        items = await tournaments.list_tournaments(session, game=game, status=status, public_only=user is None)
        return ok([tournament_payload(t) for t in items])


@router.get("/tournaments/upcoming")
async def list_upcoming():
    """Future tournaments that are planned or open for registration."""
    async with async_session_factory() as session:
        items = await tournaments.list_upcoming(session)
        return ok([tournament_payload(t) for t in items])


@router.get("/tournaments/weekly")
async def list_weekly():
    async with async_session_factory() as session:
        items = await tournaments.list_next_days(session, 7)
        return ok({"tournaments": [tournament_payload(t) for t in items]})


@router.get("/tournaments/monthly")
async def list_monthly():
    async with async_session_factory() as session:
        items = await tournaments.list_next_days(session, 30)
        return ok({"tournaments": [tournament_payload(t) for t in items]})


@router.get("/tournaments/calendar/{year}/{month}")
async def list_calendar(year: int, month: int):
    """Tournaments within a calendar month (month 1-12)."""
    async with async_session_factory() as session:
        items = await tournaments.list_calendar_month(session, year, month)
        return ok({"tournaments": [tournament_payload(t) for t in items]})


@router.get("/tournaments/stats")
async def get_tournament_stats(admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        return ok({"stats": await stats.tournament_stats(session)})


# --- Tournaments: single record ---


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int):
    async with async_session_factory() as session:
        t = await tournaments.load_tournament(session, tournament_id)
        data = tournament_payload(t)
        data["allowed_statuses"] = allowed_targets(t.status)
        return ok(data)


@router.post("/tournaments", status_code=201)
async def create_tournament(body: TournamentCreate, user: User = Depends(require_organizer_user)):
    """Create a tournament (organizer or admin). Starts with no players."""
    async with async_session_factory() as session:
        t = await tournaments.create_tournament(session, user, **body.model_dump())
        return ok(tournament_payload(t), message("tournament created"))


@router.put("/tournaments/{tournament_id}")
async def update_tournament(tournament_id: int, body: TournamentUpdate, user: User = Depends(require_organizer_user)):
    """Update provided fields. Capacity may not drop below the registered players."""
    async with async_session_factory() as session:
        t = await registrations.get_tournament(session, tournament_id)
        tournaments.ensure_can_manage(user, t)
        t = await tournaments.update_tournament(session, tournament_id, body.model_dump(exclude_unset=True))
        return ok(tournament_payload(t), message("tournament updated"))


@router.post("/tournaments/{tournament_id}/status")
async def change_tournament_status(tournament_id: int, body: StatusChange, user: User = Depends(require_organizer_user)):
    """Move the tournament through its lifecycle (e.g. registration_open -> registration_closed)."""
    async with async_session_factory() as session:
        t = await registrations.get_tournament(session, tournament_id)
        tournaments.ensure_can_manage(user, t)
        t = await tournaments.change_status(session, tournament_id, body.status)
        return ok(tournament_payload(t), message("tournament updated"))


@router.delete("/tournaments/{tournament_id}")
async def delete_tournament(tournament_id: int, user: User = Depends(require_organizer_user)):
    """Delete a tournament. Refused while any registration is active."""
    async with async_session_factory() as session:
        t = await registrations.get_tournament(session, tournament_id)
        tournaments.ensure_can_manage(user, t)
        name = await tournaments.delete_tournament(session, tournament_id)
        return ok({"deleted": name}, message("tournament deleted"))


# --- Registration ---


@router.post("/tournaments/{tournament_id}/register", status_code=201)
async def register(tournament_id: int, body: Optional[RegisterRequest] = None, user: User = Depends(require_user)):
    """Register the current member. 400 with the policy reason when refused."""
    async with async_session_factory() as session:
        reg = await registrations.register(session, tournament_id, user.id, notes=body.notes if body else None)
        return ok(registration_payload(reg), message("registered"))


@router.delete("/tournaments/{tournament_id}/register")
async def unregister(tournament_id: int, user: User = Depends(require_user)):
    """Remove the current member's registration; the freed place goes to the waiting list."""
    async with async_session_factory() as session:
        reg = await registrations.unregister(session, tournament_id, user.id)
        return ok(registration_payload(reg, with_context=False), message("unregistered"))


@router.post("/tournaments/{tournament_id}/waitlist", status_code=201)
async def join_waitlist(tournament_id: int, body: Optional[RegisterRequest] = None, user: User = Depends(require_user)):
    """Join the waiting list of a full tournament."""
    async with async_session_factory() as session:
        reg = await registrations.join_waitlist(session, tournament_id, user.id, notes=body.notes if body else None)
        return ok(registration_payload(reg), message("waitlisted"))


@router.get("/tournaments/{tournament_id}/registrations")
async def list_registrations(
    tournament_id: int, status: Optional[str] = None, user: User = Depends(require_organizer_user)
):
    """Registrations in arrival order (organizer of the tournament or admin)."""
    async with async_session_factory() as session:
        t = await registrations.get_tournament(session, tournament_id)
        tournaments.ensure_can_manage(user, t)
        regs = await registrations.list_for_tournament(session, tournament_id, status=status)
        return ok([registration_payload(r) for r in regs])


def _ensure_owner_or_manager(user: User, reg: Registration) -> None:
    if reg.user_id == user.id:
        return
    tournaments.ensure_can_manage(user, reg.tournament)


@router.post("/registrations/{registration_id}/confirm")
async def confirm_registration(registration_id: int, user: User = Depends(require_organizer_user)):
    async with async_session_factory() as session:
        reg = await registrations.get_registration(session, registration_id)
        tournaments.ensure_can_manage(user, reg.tournament)
        reg = await registrations.confirm(session, registration_id)
        return ok(registration_payload(reg))


@router.post("/registrations/{registration_id}/cancel")
async def cancel_registration(registration_id: int, user: User = Depends(require_user)):
    """Cancel a registration (its member, the tournament organizer or an admin)."""
    async with async_session_factory() as session:
        reg = await registrations.get_registration(session, registration_id)
        _ensure_owner_or_manager(user, reg)
        reg = await registrations.cancel(session, registration_id)
        return ok(registration_payload(reg))


@router.post("/registrations/{registration_id}/check-in")
async def check_in_registration(registration_id: int, user: User = Depends(require_organizer_user)):
    async with async_session_factory() as session:
        reg = await registrations.get_registration(session, registration_id)
        tournaments.ensure_can_manage(user, reg.tournament)
        reg = await registrations.check_in(session, registration_id)
        return ok(registration_payload(reg))


@router.put("/registrations/{registration_id}/result")
async def record_result(registration_id: int, body: ResultUpdate, user: User = Depends(require_organizer_user)):
    async with async_session_factory() as session:
        reg = await registrations.get_registration(session, registration_id)
        tournaments.ensure_can_manage(user, reg.tournament)
        reg = await registrations.record_result(session, registration_id, **body.model_dump(exclude_unset=True))
        return ok(registration_payload(reg))


@router.put("/registrations/{registration_id}/feedback")
async def leave_feedback(registration_id: int, body: FeedbackRequest, user: User = Depends(require_user)):
    """Rate a tournament (1-5). Only the registered member."""
    async with async_session_factory() as session:
        reg = await registrations.get_registration(session, registration_id)
        if reg.user_id != user.id:
            raise errors.Forbidden("forbidden")
        reg = await registrations.leave_feedback(session, registration_id, body.rating, body.comment)
        return ok(registration_payload(reg))
