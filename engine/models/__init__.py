"""Database models."""
from engine.models.base import Base, get_async_session, init_db
from engine.models.tournament import BracketFormat, Tournament, TournamentStatus
from engine.models.participant import Participant, ParticipantStatus
from engine.models.bracket import Bracket, BracketMatch, BracketSection, MatchStatus
from engine.models.prize import PrizeAward  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Bracket",
    "BracketFormat",
    "BracketMatch",
    "BracketSection",
    "MatchStatus",
    "Participant",
    "ParticipantStatus",
    "PrizeAward",
    "Tournament",
    "TournamentStatus",
    "get_async_session",
    "init_db",
]
