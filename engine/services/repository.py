"""Persistence for bracket state over an AsyncSession.

The repository never commits; the caller owns the transaction so that
"read match -> transition -> write match, downstream matches and tournament"
lands atomically.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from engine.models import (
    Bracket,
    BracketMatch,
    BracketSection,
    MatchStatus,
    Participant,
    ParticipantStatus,
    Tournament,
)
from engine.services.bracket_gen import MatchDraft
from engine.services.positions import dump_position

MatchKey = Tuple[str, int, int]  # (bracket_section, round_num, match_num)


class BracketRepository:
    """Load and update tournaments, participants and matches."""

    def __init__(self, session: AsyncSession):
        self.session = session
        # tournament_id -> {(section, round, match_num): match_id}
        self._index: Dict[int, Dict[MatchKey, int]] = {}

    async def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        return await self.session.get(Tournament, tournament_id)

    async def get_bracket(self, tournament_id: int) -> Optional[Bracket]:
        result = await self.session.execute(
            select(Bracket).where(Bracket.tournament_id == tournament_id)
        )
        return result.scalar_one_or_none()

    async def list_participants(self, tournament_id: int) -> List[Participant]:
        result = await self.session.execute(
            select(Participant)
            .where(Participant.tournament_id == tournament_id)
            .order_by(Participant.id)
        )
        return list(result.scalars().all())

    async def list_matches(self, tournament_id: int) -> List[BracketMatch]:
        result = await self.session.execute(
            select(BracketMatch)
            .where(BracketMatch.tournament_id == tournament_id)
            .order_by(BracketMatch.bracket_section, BracketMatch.round_num, BracketMatch.match_num)
        )
        return list(result.scalars().all())

    async def load_match(self, match_id: int) -> Optional[BracketMatch]:
        return await self.session.get(BracketMatch, match_id)

    async def _match_index(self, tournament_id: int) -> Dict[MatchKey, int]:
        index = self._index.get(tournament_id)
        if index is None:
            result = await self.session.execute(
                select(
                    BracketMatch.id,
                    BracketMatch.bracket_section,
                    BracketMatch.round_num,
                    BracketMatch.match_num,
                ).where(BracketMatch.tournament_id == tournament_id)
            )
            index = {(section, r, num): mid for mid, section, r, num in result.all()}
            self._index[tournament_id] = index
        return index

    async def find_match(
        self,
        tournament_id: int,
        round_num: int,
        match_num: int,
        section: BracketSection = BracketSection.SINGLE,
    ) -> Optional[BracketMatch]:
        """Look up a match by its place in the bracket, or None."""
        index = await self._match_index(tournament_id)
        match_id = index.get((section.value, round_num, match_num))
        if match_id is None:
            return None
        return await self.session.get(BracketMatch, match_id)

    async def list_first_round_byes(self, tournament_id: int) -> List[BracketMatch]:
        """Uncompleted round-1 matches with exactly one occupant."""
        result = await self.session.execute(
            select(BracketMatch)
            .where(
                BracketMatch.tournament_id == tournament_id,
                BracketMatch.round_num == 1,
                BracketMatch.bracket_section.in_(
                    [BracketSection.SINGLE.value, BracketSection.WINNERS.value]
                ),
                BracketMatch.status != MatchStatus.COMPLETED.value,
                or_(BracketMatch.slot_a.is_(None), BracketMatch.slot_b.is_(None)),
            )
            .order_by(BracketMatch.match_num)
        )
        return [m for m in result.scalars().all() if len(m.occupants) == 1]

    async def update_match(self, match: BracketMatch, **patch: Any) -> BracketMatch:
        """Apply a slot/status patch to a match."""
        for key, value in patch.items():
            setattr(match, key, value)
        await self.session.flush()
        return match

    async def complete_match(
        self,
        match: BracketMatch,
        winner_id: str,
        score_a: Optional[int] = None,
        score_b: Optional[int] = None,
    ) -> bool:
        """Mark a match COMPLETED unless it already is. Returns False if another submission won."""
        result = await self.session.execute(
            update(BracketMatch)
            .where(
                BracketMatch.id == match.id,
                BracketMatch.status != MatchStatus.COMPLETED.value,
            )
            .values(
                status=MatchStatus.COMPLETED.value,
                winner_id=winner_id,
                score_a=score_a,
                score_b=score_b,
                completed_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.session.refresh(match)
        return True

    async def update_tournament_status(
        self, tournament_id: int, status: str, expected: Optional[str] = None
    ) -> bool:
        """Set tournament status; with ``expected`` only if the current status matches."""
        stmt = update(Tournament).where(Tournament.id == tournament_id)
        if expected is not None:
            stmt = stmt.where(Tournament.status == expected)
        result = await self.session.execute(stmt.values(status=status))
        return result.rowcount == 1

    async def activate_participants(self, participant_ids: Sequence[int]) -> None:
        """Mark the participants entered into the bracket as ACTIVE."""
        await self.session.execute(
            update(Participant)
            .where(Participant.id.in_(participant_ids))
            .values(status=ParticipantStatus.ACTIVE.value)
        )

    async def update_participant_placement(
        self,
        tournament_id: int,
        entrant_id: str,
        status: str,
        placement: Optional[int] = None,
    ) -> None:
        """Set status/placement for the participant whose user, team or row id is entrant_id."""
        # Mirrors Participant.entrant_id: user, else team, else row id
        conditions = [
            Participant.user_id == entrant_id,
            and_(Participant.user_id.is_(None), Participant.team_id == entrant_id),
        ]
        if entrant_id.isdigit():
            conditions.append(
                and_(
                    Participant.user_id.is_(None),
                    Participant.team_id.is_(None),
                    Participant.id == int(entrant_id),
                )
            )
        await self.session.execute(
            update(Participant)
            .where(Participant.tournament_id == tournament_id, or_(*conditions))
            .values(status=status, placement=placement)
        )

    async def create_matches(
        self, tournament_id: int, drafts: Sequence[MatchDraft]
    ) -> List[BracketMatch]:
        matches = [
            BracketMatch(
                tournament_id=tournament_id,
                bracket_section=d.bracket_section,
                round_num=d.round_num,
                match_num=d.match_num,
                slot_a=d.slot_a,
                slot_b=d.slot_b,
                status=d.status,
                bracket_position=dump_position(d.bracket_position),
            )
            for d in drafts
        ]
        self.session.add_all(matches)
        await self.session.flush()
        self._index.pop(tournament_id, None)
        return matches

    async def create_bracket_record(
        self, tournament_id: int, bracket_type: str, bracket_data: Dict[str, Any]
    ) -> Bracket:
        bracket = Bracket(
            tournament_id=tournament_id,
            bracket_type=bracket_type,
            bracket_data=bracket_data,
        )
        self.session.add(bracket)
        await self.session.flush()
        return bracket
