"""Database models."""
from tourney.models.base import Base, get_async_session, init_db
from tourney.models.registration import SEAT_HOLDING_STATUSES, Registration, RegistrationStatus
from tourney.models.tournament import Tournament, TournamentStatus
from tourney.models.user import ROLES, User

__all__ = [
    "Base",
    "Registration",
    "RegistrationStatus",
    "SEAT_HOLDING_STATUSES",
    "ROLES",
    "Tournament",
    "TournamentStatus",
    "User",
    "get_async_session",
    "init_db",
]
