"""Tournament model."""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from engine.models.base import Base


class TournamentStatus(str, Enum):
    """Tournament lifecycle states. The engine only moves IN_PROGRESS -> COMPLETED."""

    REGISTRATION_OPEN = "REGISTRATION_OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BracketFormat(str, Enum):
    SINGLE_ELIMINATION = "SINGLE_ELIMINATION"
    DOUBLE_ELIMINATION = "DOUBLE_ELIMINATION"


class Tournament(Base):
    """Tournament with bracket format and prize pool."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    bracket_format: Mapped[str] = mapped_column(
        String(32), default=BracketFormat.SINGLE_ELIMINATION.value
    )
    status: Mapped[str] = mapped_column(String(32), default=TournamentStatus.REGISTRATION_OPEN.value)
    prize_pool: Mapped[float] = mapped_column(Float, default=0.0)
    prize_distributed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    participants = relationship(
        "Participant", back_populates="tournament", cascade="all, delete-orphan"
    )
    brackets = relationship(
        "Bracket", back_populates="tournament", cascade="all, delete-orphan"
    )
    matches = relationship(
        "BracketMatch", back_populates="tournament", cascade="all, delete-orphan"
    )
    prize_awards = relationship(
        "PrizeAward", back_populates="tournament", cascade="all, delete-orphan"
    )
