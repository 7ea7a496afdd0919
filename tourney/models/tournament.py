"""Tournament model."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourney.models.base import Base, utcnow


class TournamentStatus(str, enum.Enum):
    PLANNED = "planned"
    REGISTRATION_OPEN = "registration_open"
    REGISTRATION_CLOSED = "registration_closed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Tournament(Base):
    """Tournament with a capacity cap and a denormalized player count."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    game: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    max_players: Mapped[int] = mapped_column(Integer, nullable=False)
    # Seat-holding registrations; repaired by tourney.services.reconcile
    current_players: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=TournamentStatus.REGISTRATION_OPEN.value, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    registration_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    entry_fee: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    creator = relationship("User", back_populates="tournaments")
    registrations = relationship(
        "Registration", back_populates="tournament", cascade="all, delete-orphan"
    )

    @property
    def free_places(self) -> int:
        return max(self.max_players - self.current_players, 0)

    @property
    def is_full(self) -> bool:
        return self.current_players >= self.max_players
