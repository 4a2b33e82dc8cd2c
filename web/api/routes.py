"""API routes for tournaments, bracket start and match results."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from engine.errors import (
    BracketAlreadyExistsError,
    BracketError,
    MatchAlreadyCompletedError,
    MatchNotFoundError,
    TournamentNotFoundError,
)
from engine.models import (
    BracketFormat,
    Participant,
    ParticipantStatus,
    Tournament,
    TournamentStatus,
    get_async_session,
)
from engine.services.events import EventBroadcaster, broadcaster_from_config
from engine.services.repository import BracketRepository
from engine.services.tournaments import TournamentService

logger = logging.getLogger("bracketeer.api")

router = APIRouter(prefix="/api", tags=["tournaments"])


def get_events() -> Optional[EventBroadcaster]:
    return broadcaster_from_config()


def _http_error(e: BracketError) -> HTTPException:
    if isinstance(e, (TournamentNotFoundError, MatchNotFoundError)):
        return HTTPException(404, str(e))
    if isinstance(e, (MatchAlreadyCompletedError, BracketAlreadyExistsError)):
        return HTTPException(409, str(e))
    return HTTPException(400, str(e))


# --- Pydantic schemas ---


class TournamentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    bracket_format: BracketFormat = BracketFormat.SINGLE_ELIMINATION
    prize_pool: float = Field(default=0.0, ge=0)


class ParticipantCreate(BaseModel):
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    display_name: Optional[str] = None
    seed: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _one_reference(self):
        if not (self.user_id or self.team_id):
            raise ValueError("user_id or team_id is required")
        return self


class ScoreReport(BaseModel):
    score_a: int
    score_b: int


def _tournament_json(t: Tournament) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "bracket_format": t.bracket_format,
        "status": t.status,
        "prize_pool": t.prize_pool,
        "prize_distributed": t.prize_distributed,
    }


def _participant_json(p: Participant) -> dict:
    return {
        "id": p.id,
        "entrant_id": p.entrant_id,
        "user_id": p.user_id,
        "team_id": p.team_id,
        "display_name": p.display_name,
        "seed": p.seed,
        "status": p.status,
        "placement": p.placement,
    }


# --- Tournaments & participants ---


@router.get("/tournaments")
async def list_tournaments(session: AsyncSession = Depends(get_async_session)):
    result = await session.execute(select(Tournament).order_by(Tournament.created_at.desc()))
    return [_tournament_json(t) for t in result.scalars().all()]


@router.post("/tournaments")
async def create_tournament(body: TournamentCreate, session: AsyncSession = Depends(get_async_session)):
    t = Tournament(
        name=body.name,
        bracket_format=body.bracket_format.value,
        prize_pool=body.prize_pool,
        status=TournamentStatus.REGISTRATION_OPEN.value,
    )
    session.add(t)
    await session.commit()
    return _tournament_json(t)


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int, session: AsyncSession = Depends(get_async_session)):
    repo = BracketRepository(session)
    t = await repo.get_tournament(tournament_id)
    if not t:
        raise HTTPException(404, "Tournament not found")
    data = _tournament_json(t)
    data["participants"] = [_participant_json(p) for p in await repo.list_participants(tournament_id)]
    return data


@router.post("/tournaments/{tournament_id}/participants")
async def add_participant(
    tournament_id: int, body: ParticipantCreate, session: AsyncSession = Depends(get_async_session)
):
    t = await session.get(Tournament, tournament_id)
    if not t:
        raise HTTPException(404, "Tournament not found")
    if t.status != TournamentStatus.REGISTRATION_OPEN.value:
        raise HTTPException(400, f"Tournament is {t.status}. Registration is closed.")
    refs = [Participant.user_id == body.user_id] if body.user_id else []
    if body.team_id:
        refs.append(Participant.team_id == body.team_id)
    existing = await session.execute(
        select(Participant.id).where(Participant.tournament_id == tournament_id, or_(*refs))
    )
    if existing.first():
        raise HTTPException(400, "Already registered for this tournament")
    p = Participant(tournament_id=tournament_id, **body.model_dump())
    session.add(p)
    await session.commit()
    return _participant_json(p)


@router.post("/tournaments/{tournament_id}/participants/{participant_id}/check-in")
async def check_in_participant(
    tournament_id: int, participant_id: int, session: AsyncSession = Depends(get_async_session)
):
    """Confirm attendance. Once anyone checks in, only checked-in participants are bracketed."""
    p = await session.get(Participant, participant_id)
    if not p or p.tournament_id != tournament_id:
        raise HTTPException(404, "Participant not found")
    t = await session.get(Tournament, tournament_id)
    if t.status != TournamentStatus.REGISTRATION_OPEN.value:
        raise HTTPException(400, f"Tournament is {t.status}. Check-in is closed.")
    p.status = ParticipantStatus.CHECKED_IN.value
    await session.commit()
    return _participant_json(p)


# --- Bracket lifecycle ---


@router.post("/tournaments/{tournament_id}/start")
async def start_tournament(
    tournament_id: int,
    session: AsyncSession = Depends(get_async_session),
    events: Optional[EventBroadcaster] = Depends(get_events),
):
    """Generate the bracket from registered participants and begin play."""
    service = TournamentService(session, events=events)
    try:
        bracket = await service.start_tournament(tournament_id)
        await session.commit()
    except BracketError as e:
        await session.rollback()
        raise _http_error(e)
    return {"ok": True, "bracket_id": bracket.id, "bracket_type": bracket.bracket_type}


@router.post("/tournaments/{tournament_id}/matches/{match_id}/score")
async def report_score(
    tournament_id: int,
    match_id: int,
    body: ScoreReport,
    session: AsyncSession = Depends(get_async_session),
    events: Optional[EventBroadcaster] = Depends(get_events),
):
    """Record a match score and advance the winner. Duplicate reports get 409."""
    service = TournamentService(session, events=events)
    try:
        match = await service.report_score(tournament_id, match_id, body.score_a, body.score_b)
        await session.commit()
    except BracketError as e:
        await session.rollback()
        raise _http_error(e)
    return {
        "ok": True,
        "match_id": match.id,
        "winner_id": match.winner_id,
        "status": match.status,
    }


@router.post("/tournaments/{tournament_id}/byes/process")
async def process_byes(
    tournament_id: int,
    session: AsyncSession = Depends(get_async_session),
    events: Optional[EventBroadcaster] = Depends(get_events),
):
    service = TournamentService(session, events=events)
    try:
        processed = await service.process_byes(tournament_id)
        await session.commit()
    except BracketError as e:
        await session.rollback()
        raise _http_error(e)
    return {"ok": True, "processed": processed}


@router.post("/tournaments/{tournament_id}/prizes/distribute")
async def distribute_prizes(tournament_id: int, session: AsyncSession = Depends(get_async_session)):
    """Manual retry for prize distribution after a completed tournament."""
    service = TournamentService(session)
    try:
        result = await service.distribute_prizes(tournament_id)
        await session.commit()
    except BracketError as e:
        await session.rollback()
        raise _http_error(e)
    except Exception:
        await session.rollback()
        logger.exception("Prize distribution failed for tournament %s", tournament_id)
        raise HTTPException(503, "Prize distribution failed; try again later")
    return result
