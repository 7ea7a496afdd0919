"""Domain errors. Each carries an HTTP status and a localized, user-facing message."""
from __future__ import annotations

from typing import Optional

from tourney.messages import message


class TourneyError(Exception):
    """Base class for errors scoped to a single request."""

    status_code = 500

    def __init__(self, reason: str, text: Optional[str] = None, **fmt):
        self.reason = reason
        self.message = text or message(reason, **fmt)
        super().__init__(self.message)


class NotFound(TourneyError):
    status_code = 404


class Conflict(TourneyError):
    """Already registered, or a duplicate tournament name + date."""

    status_code = 400


class CapacityExceeded(TourneyError):
    status_code = 400

    def __init__(self, reason: str = "full", text: Optional[str] = None, **fmt):
        super().__init__(reason, text, **fmt)


class PolicyRejected(TourneyError):
    """Deadline, date or status checks refused the action."""

    status_code = 400


class InvalidTransition(PolicyRejected):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__("invalid transition", current=current, target=target)


class ValidationError(TourneyError):
    status_code = 400


class Forbidden(TourneyError):
    status_code = 403


class Unexpected(TourneyError):
    def __init__(self, reason: str = "server error", text: Optional[str] = None, **fmt):
        super().__init__(reason, text, **fmt)
