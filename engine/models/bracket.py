"""Bracket and match models."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from engine.models.base import Base


class MatchStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"  # Both slots filled; never reverts
    COMPLETED = "COMPLETED"


class BracketSection(str, Enum):
    SINGLE = "SINGLE"
    WINNERS = "WINNERS"
    LOSERS = "LOSERS"
    GRAND_FINALS = "GRAND_FINALS"


class Bracket(Base):
    """Bracket record for a tournament: format plus the visualization built at generation."""

    __tablename__ = "brackets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, unique=True)
    bracket_type: Mapped[str] = mapped_column(String(32), nullable=False)  # SINGLE_ELIMINATION, DOUBLE_ELIMINATION
    bracket_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    tournament = relationship("Tournament", back_populates="brackets")


class BracketMatch(Base):
    """Single match in a bracket. Routing lives in bracket_position (see services.positions)."""

    __tablename__ = "bracket_matches"
    __table_args__ = (
        UniqueConstraint("tournament_id", "bracket_section", "round_num", "match_num"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, index=True)
    bracket_section: Mapped[str] = mapped_column(String(16), default=BracketSection.SINGLE.value)
    round_num: Mapped[int] = mapped_column(Integer, nullable=False)
    match_num: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_a: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    slot_b: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=MatchStatus.PENDING.value)
    score_a: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_b: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    winner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    bracket_position: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    tournament = relationship("Tournament", back_populates="matches")

    @property
    def occupants(self) -> list[str]:
        return [x for x in (self.slot_a, self.slot_b) if x]
