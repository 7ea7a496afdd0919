"""Shared API utilities: response envelope and record serializers."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer

from tourney.models import Registration, Tournament, User
from tourney.models.base import as_utc


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Success envelope shared by every endpoint."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def fail(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


# Stored datetimes are naive UTC; emit them with an explicit offset
UTCDatetime = Annotated[datetime, PlainSerializer(lambda v: as_utc(v).isoformat(), when_used="json")]


class _UTCModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TournamentResponse(_UTCModel):
    id: int
    name: str
    description: Optional[str] = None
    game: str
    date: UTCDatetime
    max_players: int
    current_players: int
    free_places: int
    status: str
    created_by: Optional[int] = None
    registration_deadline: Optional[UTCDatetime] = None
    entry_fee: Optional[float] = None
    is_public: bool
    tags: list[str] = []
    created_at: Optional[UTCDatetime] = None


class TournamentSummary(_UTCModel):
    id: int
    name: str
    game: str
    date: UTCDatetime
    max_players: int
    current_players: int
    status: str


class MemberSummary(_UTCModel):
    id: int
    username: str
    display_name: Optional[str] = None


class UserResponse(_UTCModel):
    id: int
    username: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: str
    is_active: bool
    last_login: Optional[UTCDatetime] = None
    created_at: Optional[UTCDatetime] = None


class RegistrationResponse(_UTCModel):
    id: int
    user_id: int
    tournament_id: int
    registered_at: UTCDatetime
    status: str
    notes: Optional[str] = None
    checked_in: bool
    checked_in_at: Optional[UTCDatetime] = None
    position: Optional[int] = None
    points: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    prize: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


def tournament_payload(t: Tournament) -> dict:
    return TournamentResponse.model_validate(t).model_dump(mode="json")


def user_payload(u: User) -> dict:
    return UserResponse.model_validate(u).model_dump(mode="json")


def registration_payload(reg: Registration, with_context: bool = True) -> dict:
    """Serialize a registration; with_context attaches the tournament and member (must be loaded)."""
    data = RegistrationResponse.model_validate(reg).model_dump(mode="json")
    if with_context:
        data["tournament"] = TournamentSummary.model_validate(reg.tournament).model_dump(mode="json")
        data["member"] = MemberSummary.model_validate(reg.member).model_dump(mode="json")
    return data
