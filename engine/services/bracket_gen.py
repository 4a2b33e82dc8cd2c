"""Bracket generation service.

Generators are pure: they take entrants and return ``(matches, bracket_data)``
where ``matches`` are unsaved :class:`MatchDraft` rows and ``bracket_data`` is
the visualization stored on the Bracket record.
"""
from __future__ import annotations

import random
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from engine.errors import InsufficientParticipantsError
from engine.models.bracket import BracketSection, MatchStatus
from engine.services.bracket_view import build_double_elimination_view, build_single_elimination_view
from engine.services.positions import (
    BracketPosition,
    GrandFinalsPosition,
    LosersPosition,
    SinglePosition,
    Slot,
    WinnersPosition,
)
from engine.services.seeding import Entrant, seed_entrants


class MatchDraft(BaseModel):
    """Match skeleton produced at generation time, before it is persisted."""

    model_config = ConfigDict(use_enum_values=True)

    bracket_section: BracketSection
    round_num: int
    match_num: int
    slot_a: Optional[str] = None
    slot_b: Optional[str] = None
    status: MatchStatus = MatchStatus.PENDING
    bracket_position: BracketPosition


GeneratedBracket = Tuple[List[MatchDraft], Dict[str, Any]]


def next_power_of_2(n: int) -> int:
    """Round up to next power of 2."""
    p = 1
    while p < n:
        p *= 2
    return p


def _draft(
    section: BracketSection,
    round_num: int,
    match_num: int,
    position: BracketPosition,
    slot_a: Optional[str] = None,
    slot_b: Optional[str] = None,
) -> MatchDraft:
    return MatchDraft(
        bracket_section=section,
        round_num=round_num,
        match_num=match_num,
        slot_a=slot_a,
        slot_b=slot_b,
        # Byes stay PENDING until the bye processor completes them
        status=MatchStatus.READY if slot_a and slot_b else MatchStatus.PENDING,
        bracket_position=position,
    )


def _first_round_pairs(
    seeded: List[Entrant], size: int
) -> List[Tuple[Entrant, Optional[Entrant]]]:
    """Consecutive pairs first, then one entrant per trailing match (the byes).

    Every first-round match gets at least one entrant; size - n matches are byes.
    """
    n = len(seeded)
    full = n - size // 2
    pairs: List[Tuple[Entrant, Optional[Entrant]]] = [
        (seeded[2 * i], seeded[2 * i + 1]) for i in range(full)
    ]
    pairs.extend((e, None) for e in seeded[2 * full:])
    return pairs


def _check_count(seeded: List[Entrant]) -> None:
    if len(seeded) < 2:
        raise InsufficientParticipantsError(
            f"Need at least 2 participants to generate a bracket, got {len(seeded)}"
        )


def _build_single_elimination(seeded: List[Entrant]) -> GeneratedBracket:
    _check_count(seeded)
    size = next_power_of_2(len(seeded))
    total_rounds = size.bit_length() - 1

    def position(r: int, p: int) -> SinglePosition:
        return SinglePosition(
            round=r,
            position=p,
            next_match_number=None if r == total_rounds else (p + 1) // 2,
            next_slot=Slot.for_match_number(p),
        )

    matches: List[MatchDraft] = []
    for p, (high, low) in enumerate(_first_round_pairs(seeded, size), start=1):
        matches.append(
            _draft(BracketSection.SINGLE, 1, p, position(1, p), high.id, low.id if low else None)
        )

    # Rounds 2+: empty matches, filled as winners advance
    for r in range(2, total_rounds + 1):
        for p in range(1, size // 2 ** r + 1):
            matches.append(_draft(BracketSection.SINGLE, r, p, position(r, p)))

    return matches, build_single_elimination_view(matches, len(seeded))


def generate_single_elimination(
    entrants: Iterable[Entrant], rng: Optional[random.Random] = None
) -> GeneratedBracket:
    """Create a single-elimination skeleton: one bracket, byes in round 1."""
    return _build_single_elimination(seed_entrants(entrants, rng))


def _vacant_losers_slots(round_num: int, position: int, bye_matches: set[int]) -> Tuple[Slot, ...]:
    """Losers slots fed only by winners round-1 byes (which have no loser)."""
    feeders = {2 * position - 1, 2 * position}
    if round_num == 1:
        return tuple(
            slot
            for slot, feeder in ((Slot.A, 2 * position - 1), (Slot.B, 2 * position))
            if feeder in bye_matches
        )
    if round_num == 2 and feeders <= bye_matches:
        # Both drops into the L1 match were byes, so no survivor arrives in slot A
        return (Slot.A,)
    return ()


def generate_double_elimination(
    entrants: Iterable[Entrant], rng: Optional[random.Random] = None
) -> GeneratedBracket:
    """Create winners bracket, losers bracket and grand finals.

    Winners round r has size/2^r matches. Losers round 1 pairs the winners
    round-1 losers; losers round 2k-2 (k >= 2) takes the survivors of the
    previous losers round in slot A and the losers of winners round k in
    slot B; odd losers rounds after the first halve the field. Two entrants
    (size < 4) fall back to single elimination.
    """
    seeded = seed_entrants(entrants, rng)
    _check_count(seeded)
    size = next_power_of_2(len(seeded))
    if size < 4:
        return _build_single_elimination(seeded)

    winners_rounds = size.bit_length() - 1
    losers_rounds = 2 * winners_rounds - 2
    pairs = _first_round_pairs(seeded, size)
    bye_matches = {p for p, (_, low) in enumerate(pairs, start=1) if low is None}

    matches: List[MatchDraft] = []

    # Winners bracket
    for r in range(1, winners_rounds + 1):
        is_final = r == winners_rounds
        for p in range(1, size // 2 ** r + 1):
            if r == 1:
                drop_round, drop_position, drop_slot = 1, (p + 1) // 2, Slot.for_match_number(p)
            else:
                drop_round, drop_position, drop_slot = 2 * r - 2, p, Slot.B
            position = WinnersPosition(
                round=r,
                position=p,
                next_winners_match=None if is_final else (p + 1) // 2,
                next_winners_slot=Slot.A if is_final else Slot.for_match_number(p),
                drop_losers_round=drop_round,
                drop_losers_position=drop_position,
                drop_losers_slot=drop_slot,
                is_winners_final=is_final,
            )
            slot_a = slot_b = None
            if r == 1:
                high, low = pairs[p - 1]
                slot_a, slot_b = high.id, (low.id if low else None)
            matches.append(_draft(BracketSection.WINNERS, r, p, position, slot_a, slot_b))

    # Losers bracket
    for r in range(1, losers_rounds + 1):
        is_final = r == losers_rounds
        count = size // 2 ** ((r + 1) // 2 + 1)
        for p in range(1, count + 1):
            if is_final:
                next_match, next_slot = None, Slot.B  # Grand finals slot B
            elif r % 2 == 1:
                next_match, next_slot = p, Slot.A
            else:
                next_match, next_slot = (p + 1) // 2, Slot.for_match_number(p)
            position = LosersPosition(
                round=r,
                position=p,
                next_losers_match=next_match,
                next_losers_slot=next_slot,
                is_losers_final=is_final,
                vacant_slots=_vacant_losers_slots(r, p, bye_matches),
            )
            matches.append(_draft(BracketSection.LOSERS, r, p, position))

    matches.append(_draft(BracketSection.GRAND_FINALS, 1, 1, GrandFinalsPosition()))

    return matches, build_double_elimination_view(matches, len(seeded))
