"""Match advancement: route winners and losers through the bracket.

Completing a match is a one-way transition. The engine marks the match
COMPLETED with a compare-and-set update before touching anything downstream,
so a duplicate submission for the same match fails with
MatchAlreadyCompletedError and writes nothing. Tournament completion is
guarded the same way, so placements and prize distribution happen once.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from engine.errors import (
    InvalidWinnerError,
    MatchAlreadyCompletedError,
    MatchNotReadyError,
    TournamentNotActiveError,
)
from engine.models import BracketMatch, BracketSection, MatchStatus, ParticipantStatus, TournamentStatus
from engine.services.events import MATCH_UPDATED, TOURNAMENT_STATUS, EventBroadcaster, notify
from engine.services.positions import (
    BracketPosition,
    LosersPosition,
    SinglePosition,
    Slot,
    WinnersPosition,
    parse_position,
)
from engine.services.prizes import PrizeDistributor
from engine.services.repository import BracketRepository

logger = logging.getLogger("bracketeer.advancement")


def match_event(m: BracketMatch) -> Dict[str, Any]:
    return {
        "match_id": m.id,
        "bracket_section": m.bracket_section,
        "round_num": m.round_num,
        "match_num": m.match_num,
        "slot_a": m.slot_a,
        "slot_b": m.slot_b,
        "status": m.status,
        "winner_id": m.winner_id,
        "score_a": m.score_a,
        "score_b": m.score_b,
    }


class AdvancementEngine:
    """Applies match results to a persisted bracket."""

    def __init__(
        self,
        repository: BracketRepository,
        prize_distributor: PrizeDistributor,
        events: Optional[EventBroadcaster] = None,
    ):
        self.repo = repository
        self.prizes = prize_distributor
        self.events = events

    async def advance_winner(
        self,
        match_id: int,
        winner_id: str,
        score_a: Optional[int] = None,
        score_b: Optional[int] = None,
    ) -> Optional[BracketMatch]:
        """Complete a match for ``winner_id`` and route both participants onward.

        Returns the completed match, or None when the match is missing or its
        bracket position is unreadable (nothing is changed in that case).
        """
        match = await self.repo.load_match(match_id)
        if match is None:
            logger.warning("Match %s not found; nothing to advance", match_id)
            return None
        position = parse_position(match.bracket_position)
        if position is None:
            logger.warning("Match %s has no usable bracket position; not advancing", match.id)
            return None

        if match.status == MatchStatus.COMPLETED.value:
            raise MatchAlreadyCompletedError(f"Match {match.id} already has a result")
        tournament = await self.repo.get_tournament(match.tournament_id)
        if tournament is None or tournament.status != TournamentStatus.IN_PROGRESS.value:
            status = tournament.status if tournament else "missing"
            raise TournamentNotActiveError(f"Tournament {match.tournament_id} is {status}")
        if winner_id not in match.occupants:
            raise InvalidWinnerError(f"{winner_id} is not playing in match {match.id}")

        loser_id = match.slot_b if winner_id == match.slot_a else match.slot_a
        if loser_id is None and not _is_bye(match, position):
            raise MatchNotReadyError(f"Match {match.id} is still waiting for an opponent")

        if not await self.repo.complete_match(match, winner_id, score_a, score_b):
            raise MatchAlreadyCompletedError(f"Match {match.id} already has a result")
        logger.info(
            "Match %s (%s R%s M%s) won by %s%s",
            match.id,
            match.bracket_section,
            match.round_num,
            match.match_num,
            winner_id,
            "" if loser_id else " (bye)",
        )
        await notify(self.events, match.tournament_id, MATCH_UPDATED, match_event(match))

        if isinstance(position, SinglePosition):
            await self._route_single(match, position, winner_id, loser_id)
        elif isinstance(position, WinnersPosition):
            await self._route_winners(match, position, winner_id, loser_id)
        elif isinstance(position, LosersPosition):
            await self._route_losers(match, position, winner_id, loser_id)
        else:
            await self._complete_tournament(match.tournament_id, winner_id, loser_id)
        return match

    async def process_first_round_byes(self, tournament_id: int) -> List[BracketMatch]:
        """Auto-complete round-1 matches that have a single entrant."""
        advanced = []
        for m in await self.repo.list_first_round_byes(tournament_id):
            await self.advance_winner(m.id, m.occupants[0])
            advanced.append(m)
        if advanced:
            logger.info("Processed %d first-round bye(s) for tournament %s", len(advanced), tournament_id)
        return advanced

    async def _route_single(
        self, match: BracketMatch, pos: SinglePosition, winner_id: str, loser_id: Optional[str]
    ) -> None:
        tid = match.tournament_id
        if pos.is_final:
            await self._complete_tournament(tid, winner_id, loser_id)
            return

        next_match = await self.repo.find_match(tid, match.round_num + 1, pos.next_match_number)
        if next_match is None:
            logger.warning("Match %s: downstream R%s M%s missing", match.id, match.round_num + 1, pos.next_match_number)
            return

        if loser_id:
            next_pos = parse_position(next_match.bracket_position)
            if isinstance(next_pos, SinglePosition) and next_pos.is_final:
                # Semifinal loser
                await self.repo.update_participant_placement(tid, loser_id, ParticipantStatus.ELIMINATED.value, 3)
            else:
                await self._eliminate(tid, loser_id)
        await self._seat(next_match, pos.next_slot, winner_id)

    async def _route_winners(
        self, match: BracketMatch, pos: WinnersPosition, winner_id: str, loser_id: Optional[str]
    ) -> None:
        tid = match.tournament_id
        if pos.is_winners_final:
            target = await self.repo.find_match(tid, 1, 1, BracketSection.GRAND_FINALS)
            slot = Slot.A
        else:
            target = await self.repo.find_match(
                tid, match.round_num + 1, pos.next_winners_match, BracketSection.WINNERS
            )
            slot = pos.next_winners_slot
        if target is None:
            logger.warning("Match %s: next winners-bracket match missing", match.id)
        else:
            await self._seat(target, slot, winner_id)

        if not loser_id:
            return
        drop = await self.repo.find_match(
            tid, pos.drop_losers_round, pos.drop_losers_position, BracketSection.LOSERS
        )
        if drop is None:
            logger.warning(
                "Match %s: losers drop L%s M%s missing", match.id, pos.drop_losers_round, pos.drop_losers_position
            )
            return
        await self._seat(drop, pos.drop_losers_slot, loser_id)

    async def _route_losers(
        self, match: BracketMatch, pos: LosersPosition, winner_id: str, loser_id: Optional[str]
    ) -> None:
        tid = match.tournament_id
        if loser_id:
            if pos.is_losers_final:
                await self.repo.update_participant_placement(tid, loser_id, ParticipantStatus.ELIMINATED.value, 3)
            else:
                await self._eliminate(tid, loser_id)

        if pos.is_losers_final:
            target = await self.repo.find_match(tid, 1, 1, BracketSection.GRAND_FINALS)
            slot = Slot.B
        else:
            target = await self.repo.find_match(
                tid, match.round_num + 1, pos.next_losers_match, BracketSection.LOSERS
            )
            slot = pos.next_losers_slot
        if target is None:
            logger.warning("Match %s: next losers-bracket match missing", match.id)
            return
        await self._seat(target, slot, winner_id)

    async def _seat(self, match: BracketMatch, slot: Slot, entrant_id: str) -> None:
        """Write an entrant into a slot, then mark READY or resolve a bye."""
        current = getattr(match, slot.field)
        if current and current != entrant_id:
            logger.warning(
                "Match %s slot %s already holds %s; not overwriting with %s",
                match.id, slot.value, current, entrant_id,
            )
            return
        await self.repo.update_match(match, **{slot.field: entrant_id})
        if match.slot_a and match.slot_b and match.status == MatchStatus.PENDING.value:
            await self.repo.update_match(match, status=MatchStatus.READY.value)
        await notify(self.events, match.tournament_id, MATCH_UPDATED, match_event(match))

        if match.status == MatchStatus.PENDING.value:
            position = parse_position(match.bracket_position)
            if isinstance(position, LosersPosition) and slot.other in position.vacant_slots:
                await self.advance_winner(match.id, entrant_id)

    async def _eliminate(self, tournament_id: int, entrant_id: str) -> None:
        await self.repo.update_participant_placement(
            tournament_id, entrant_id, ParticipantStatus.ELIMINATED.value, None
        )

    async def _complete_tournament(
        self, tournament_id: int, winner_id: str, loser_id: Optional[str]
    ) -> None:
        completed = await self.repo.update_tournament_status(
            tournament_id,
            TournamentStatus.COMPLETED.value,
            expected=TournamentStatus.IN_PROGRESS.value,
        )
        if not completed:
            logger.warning("Tournament %s already completed; skipping placements and prizes", tournament_id)
            return

        await self.repo.update_participant_placement(tournament_id, winner_id, ParticipantStatus.WINNER.value, 1)
        if loser_id:
            await self.repo.update_participant_placement(
                tournament_id, loser_id, ParticipantStatus.ELIMINATED.value, 2
            )
        logger.info("Tournament %s completed, champion %s", tournament_id, winner_id)
        await notify(self.events, tournament_id, TOURNAMENT_STATUS, {"status": TournamentStatus.COMPLETED.value})

        try:
            result = await self.prizes.distribute_prizes(tournament_id)
            logger.info("Prize distribution for tournament %s: %s", tournament_id, result)
        except Exception:
            # Completion stands; prizes can be retried through the distribute endpoint
            logger.exception("Prize distribution failed for tournament %s", tournament_id)


def _is_bye(match: BracketMatch, position: BracketPosition) -> bool:
    """A single-entrant match that may complete without an opponent."""
    if isinstance(position, (SinglePosition, WinnersPosition)):
        return match.round_num == 1
    if isinstance(position, LosersPosition):
        empty = Slot.A if match.slot_a is None else Slot.B
        return empty in position.vacant_slots
    return False
