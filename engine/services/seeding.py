"""Participant seeding for bracket placement."""
from __future__ import annotations

import random
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict


class Entrant(BaseModel):
    """Bracket entrant: slot identifier plus optional seed (lower = stronger)."""

    model_config = ConfigDict(frozen=True)

    id: str
    seed: Optional[int] = None


def seed_entrants(entrants: Iterable[Entrant], rng: Optional[random.Random] = None) -> List[Entrant]:
    """Order entrants for bracket entry.

    With any explicit seed present, sort ascending by seed (unseeded last,
    input order kept among equals). Otherwise shuffle uniformly; pass ``rng``
    for a reproducible order.
    """
    ordered = list(entrants)
    if any(e.seed is not None for e in ordered):
        return sorted(ordered, key=lambda e: (e.seed is None, e.seed or 0))
    if rng is None:
        rng = random.Random()
    rng.shuffle(ordered)
    return ordered
