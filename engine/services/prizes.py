"""Prize distribution capability and split calculation."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol

import config


class PrizeDistributor(Protocol):
    """What the advancement engine needs from tournament lifecycle code."""

    async def distribute_prizes(self, tournament_id: int) -> Dict[str, Any]: ...


def prize_amount_cents(
    prize_pool: float,
    placement: int,
    shared_by: int = 1,
    split: Optional[Mapping[int, float]] = None,
) -> int:
    """Cents owed to one participant at ``placement``.

    A placement held jointly (two semifinal losers both finish 3rd) splits
    that placement's share. Placements outside the split get 0.
    """
    split = config.PRIZE_SPLIT if split is None else split
    return round(prize_pool * split.get(placement, 0.0) * 100 / max(shared_by, 1))
