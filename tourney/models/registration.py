"""Registration model - member registered for a tournament."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourney.models.base import Base, utcnow


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    WAITLISTED = "waitlisted"
    NO_SHOW = "no_show"
    COMPLETED = "completed"


# Statuses that occupy a place and are counted in Tournament.current_players
SEAT_HOLDING_STATUSES = (
    RegistrationStatus.PENDING.value,
    RegistrationStatus.CONFIRMED.value,
    RegistrationStatus.NO_SHOW.value,
    RegistrationStatus.COMPLETED.value,
)


class Registration(Base):
    """Member registration for a tournament. One row per (member, tournament)."""

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("user_id", "tournament_id", name="uq_registration_member_tournament"),
        Index("ix_registrations_tournament_status", "tournament_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RegistrationStatus.CONFIRMED.value)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    checked_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Result
    position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    draws: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prize: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Feedback
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-5
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="registrations")
    member: Mapped["User"] = relationship("User", back_populates="registrations")

    @property
    def is_active(self) -> bool:
        return self.status != RegistrationStatus.CANCELLED.value

    @property
    def holds_seat(self) -> bool:
        return self.status in SEAT_HOLDING_STATUSES
