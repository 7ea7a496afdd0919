"""Tournament status state machine. Transitions are explicit organizer actions."""
from __future__ import annotations

from tourney import errors
from tourney.models import Tournament, TournamentStatus

S = TournamentStatus

TRANSITIONS: dict[TournamentStatus, tuple[TournamentStatus, ...]] = {
    S.PLANNED: (S.REGISTRATION_OPEN, S.CANCELLED),
    S.REGISTRATION_OPEN: (S.REGISTRATION_CLOSED, S.CANCELLED),
    S.REGISTRATION_CLOSED: (S.REGISTRATION_OPEN, S.IN_PROGRESS, S.CANCELLED),
    S.IN_PROGRESS: (S.COMPLETED, S.CANCELLED),
    S.COMPLETED: (),
    S.CANCELLED: (),
}


def parse_status(value: str) -> TournamentStatus:
    try:
        return TournamentStatus(value)
    except ValueError:
        raise errors.ValidationError("invalid status", status=value) from None


def allowed_targets(current: str) -> list[str]:
    return [s.value for s in TRANSITIONS[parse_status(current)]]


def can_transition(current: str, target: str) -> bool:
    return parse_status(target) in TRANSITIONS[parse_status(current)]


def transition(tournament: Tournament, target: str) -> Tournament:
    """Move tournament to target status or raise InvalidTransition. Setting the current status is a no-op."""
    target_status = parse_status(target)
    if tournament.status == target_status.value:
        return tournament
    if not can_transition(tournament.status, target_status.value):
        raise errors.InvalidTransition(tournament.status, target_status.value)
    tournament.status = target_status.value
    return tournament
