"""Tournament lifecycle: start (generate bracket), report scores, distribute prizes.

Methods never commit; callers wrap each call in one transaction.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from engine.errors import (
    BracketAlreadyExistsError,
    InsufficientParticipantsError,
    InvalidScoreError,
    MatchAlreadyCompletedError,
    MatchNotFoundError,
    MatchNotReadyError,
    TournamentNotActiveError,
    TournamentNotFoundError,
)
from engine.models import (
    Bracket,
    BracketFormat,
    BracketMatch,
    MatchStatus,
    ParticipantStatus,
    PrizeAward,
    Tournament,
    TournamentStatus,
)
from engine.services.advancement import AdvancementEngine
from engine.services.bracket_gen import generate_double_elimination, generate_single_elimination
from engine.services.events import BRACKET_CREATED, TOURNAMENT_STATUS, EventBroadcaster, notify
from engine.services.prizes import prize_amount_cents
from engine.services.repository import BracketRepository
from engine.services.seeding import Entrant

logger = logging.getLogger("bracketeer.tournaments")


class TournamentService:
    """Glue between stored tournaments and the bracket engine."""

    def __init__(
        self,
        session: AsyncSession,
        events: Optional[EventBroadcaster] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session = session
        self.repo = BracketRepository(session)
        self.events = events
        self.rng = rng
        self.engine = AdvancementEngine(self.repo, self, events)

    async def _get_tournament(self, tournament_id: int) -> Tournament:
        t = await self.repo.get_tournament(tournament_id)
        if not t:
            raise TournamentNotFoundError(f"Tournament {tournament_id} not found")
        return t

    async def start_tournament(self, tournament_id: int) -> Bracket:
        """Generate and store the bracket, set IN_PROGRESS, then clear first-round byes."""
        t = await self._get_tournament(tournament_id)
        if await self.repo.get_bracket(tournament_id):
            raise BracketAlreadyExistsError("Bracket already exists")
        if t.status != TournamentStatus.REGISTRATION_OPEN.value:
            raise TournamentNotActiveError(f"Tournament is {t.status}")

        participants = await self.repo.list_participants(tournament_id)
        # Once anyone has checked in, only checked-in participants are bracketed
        checked_in = [p for p in participants if p.status == ParticipantStatus.CHECKED_IN.value]
        if checked_in:
            participants = checked_in
        if len(participants) < 2:
            raise InsufficientParticipantsError("Need at least 2 participants to start")

        entrants = [Entrant(id=p.entrant_id, seed=p.seed) for p in participants]
        if t.bracket_format == BracketFormat.DOUBLE_ELIMINATION.value:
            matches, bracket_data = generate_double_elimination(entrants, self.rng)
        else:
            matches, bracket_data = generate_single_elimination(entrants, self.rng)

        await self.repo.create_matches(tournament_id, matches)
        bracket = await self.repo.create_bracket_record(tournament_id, bracket_data["type"], bracket_data)
        await self.repo.activate_participants([p.id for p in participants])
        await self.repo.update_tournament_status(
            tournament_id,
            TournamentStatus.IN_PROGRESS.value,
            expected=TournamentStatus.REGISTRATION_OPEN.value,
        )
        logger.info(
            "Tournament %s started: %s bracket, %d participants, %d matches",
            tournament_id, bracket_data["type"], len(participants), len(matches),
        )
        await notify(self.events, tournament_id, BRACKET_CREATED, bracket_data)
        await notify(self.events, tournament_id, TOURNAMENT_STATUS, {"status": TournamentStatus.IN_PROGRESS.value})

        await self.engine.process_first_round_byes(tournament_id)
        return bracket

    async def report_score(
        self, tournament_id: int, match_id: int, score_a: int, score_b: int
    ) -> BracketMatch:
        """Record a score; the higher score wins and advances."""
        match = await self.repo.load_match(match_id)
        if not match or match.tournament_id != tournament_id:
            raise MatchNotFoundError("Match not found")
        if match.status == MatchStatus.COMPLETED.value:
            raise MatchAlreadyCompletedError(f"Match {match.id} already has a result")
        if score_a < 0 or score_b < 0:
            raise InvalidScoreError("Scores cannot be negative")
        if score_a == score_b:
            raise InvalidScoreError("A match cannot end in a draw")
        if not (match.slot_a and match.slot_b):
            raise MatchNotReadyError(f"Match {match.id} is still waiting for an opponent")

        winner_id = match.slot_a if score_a > score_b else match.slot_b
        await self.engine.advance_winner(match.id, winner_id, score_a, score_b)
        return match

    async def process_byes(self, tournament_id: int) -> int:
        await self._get_tournament(tournament_id)
        return len(await self.engine.process_first_round_byes(tournament_id))

    async def distribute_prizes(self, tournament_id: int) -> Dict[str, Any]:
        """Split the prize pool among placements 1-3. Safe to call more than once."""
        t = await self._get_tournament(tournament_id)
        if t.status != TournamentStatus.COMPLETED.value:
            raise TournamentNotActiveError("Tournament is not completed")
        if t.prize_distributed:
            return {"distributed": False, "message": "Prizes already distributed"}

        placed = [p for p in await self.repo.list_participants(tournament_id) if p.placement]
        async with self.session.begin_nested():
            result = await self.session.execute(
                update(Tournament)
                .where(Tournament.id == tournament_id, Tournament.prize_distributed == False)  # noqa: E712
                .values(prize_distributed=True)
            )
            if result.rowcount != 1:
                return {"distributed": False, "message": "Prizes already distributed"}
            if t.prize_pool <= 0:
                return {"distributed": True, "message": "No prizes to distribute (free tournament)"}

            awards = []
            holders = Counter(p.placement for p in placed)
            for p in placed:
                amount = prize_amount_cents(t.prize_pool, p.placement, holders[p.placement])
                if amount <= 0:
                    continue
                awards.append(
                    PrizeAward(
                        tournament_id=tournament_id,
                        participant_id=p.id,
                        placement=p.placement,
                        amount_cents=amount,
                    )
                )
            self.session.add_all(awards)

        logger.info("Tournament %s: prizes distributed to %d participant(s)", tournament_id, len(awards))
        return {
            "distributed": True,
            "message": f"Prizes distributed to {len(awards)} winner(s)",
        }
