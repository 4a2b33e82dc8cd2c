"""Read-only bracket projection (rounds, labels, slots, status).

Works on generated match drafts and on persisted BracketMatch rows alike.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from engine.models.bracket import BracketSection
from engine.models.tournament import BracketFormat

ROUND_LABELS = {
    1: "Finals",
    2: "Semi-Finals",
    3: "Quarter-Finals",
}


def round_label(round_num: int, total_rounds: int) -> str:
    """Label a single-elimination round by its distance from the final."""
    return ROUND_LABELS.get(total_rounds - round_num + 1, f"Round {round_num}")


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


def _match_summary(m: Any) -> Dict[str, Any]:
    return {
        "id": getattr(m, "id", None),
        "match_num": m.match_num,
        "slot_a": m.slot_a,
        "slot_b": m.slot_b,
        "status": _value(m.status),
        "winner_id": getattr(m, "winner_id", None),
        "score_a": getattr(m, "score_a", None),
        "score_b": getattr(m, "score_b", None),
    }


def _rounds(matches: List[Any], label) -> List[Dict[str, Any]]:
    by_round: Dict[int, List[Any]] = {}
    for m in matches:
        by_round.setdefault(m.round_num, []).append(m)
    total = max(by_round) if by_round else 0
    return [
        {
            "round": r,
            "name": label(r, total),
            "matches": [_match_summary(m) for m in sorted(by_round[r], key=lambda x: x.match_num)],
        }
        for r in sorted(by_round)
    ]


def _section(matches: Iterable[Any], section: BracketSection) -> List[Any]:
    return [m for m in matches if _value(m.bracket_section) == section.value]


def build_single_elimination_view(matches: Iterable[Any], participant_count: int) -> Dict[str, Any]:
    rounds = _rounds(_section(matches, BracketSection.SINGLE), round_label)
    return {
        "type": BracketFormat.SINGLE_ELIMINATION.value,
        "total_rounds": len(rounds),
        "participant_count": participant_count,
        "rounds": rounds,
    }


def build_double_elimination_view(matches: Iterable[Any], participant_count: int) -> Dict[str, Any]:
    matches = list(matches)
    winners = _rounds(
        _section(matches, BracketSection.WINNERS),
        lambda r, total: "Winners Final" if r == total else f"Winners Round {r}",
    )
    losers = _rounds(
        _section(matches, BracketSection.LOSERS),
        lambda r, total: "Losers Final" if r == total else f"Losers Round {r}",
    )
    grand_finals = [_match_summary(m) for m in _section(matches, BracketSection.GRAND_FINALS)]
    return {
        "type": BracketFormat.DOUBLE_ELIMINATION.value,
        "winners_rounds": len(winners),
        "losers_rounds": len(losers),
        "participant_count": participant_count,
        "winners": winners,
        "losers": losers,
        "grand_finals": grand_finals,
    }


def project_bracket(bracket_type: str, matches: Iterable[Any], participant_count: int) -> Dict[str, Any]:
    """Current state of a persisted bracket in the same shape as generation output."""
    if bracket_type == BracketFormat.DOUBLE_ELIMINATION.value:
        return build_double_elimination_view(matches, participant_count)
    return build_single_elimination_view(matches, participant_count)
