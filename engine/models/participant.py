"""Participant model - a user or team entered in a tournament."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from engine.models.base import Base


class ParticipantStatus(str, Enum):
    REGISTERED = "REGISTERED"
    CHECKED_IN = "CHECKED_IN"
    ACTIVE = "ACTIVE"  # In the bracket, not yet eliminated
    ELIMINATED = "ELIMINATED"  # With placement 2/3, or unranked when placement is None
    WINNER = "WINNER"


class Participant(Base):
    """Tournament entry. Seed is optional (lower = stronger)."""

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    team_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    seed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=ParticipantStatus.REGISTERED.value)
    placement: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="participants")

    @property
    def entrant_id(self) -> str:
        """Identifier placed in bracket slots: the user, else the team, else this row."""
        return self.user_id or self.team_id or str(self.id)
