"""Bracket-position descriptors.

Every match stores where its winner (and, in double elimination, its loser)
goes next. The descriptor is persisted as JSON on ``BracketMatch.bracket_position``
and always read back through :func:`parse_position`, which returns one of the
variants below keyed by ``bracket``. Unreadable data parses to ``None``.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger("bracketeer.positions")


class Slot(str, Enum):
    A = "A"
    B = "B"

    @property
    def field(self) -> str:
        """Column name on BracketMatch."""
        return "slot_a" if self is Slot.A else "slot_b"

    @property
    def other(self) -> "Slot":
        return Slot.B if self is Slot.A else Slot.A

    @classmethod
    def for_match_number(cls, match_num: int) -> "Slot":
        """Odd match numbers feed slot A downstream, even ones slot B."""
        return cls.A if match_num % 2 == 1 else cls.B


class _Position(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SinglePosition(_Position):
    bracket: Literal["SINGLE"] = "SINGLE"
    round: int
    position: int
    next_match_number: Optional[int] = None  # None on the final
    next_slot: Slot = Slot.A

    @property
    def is_final(self) -> bool:
        return self.next_match_number is None


class WinnersPosition(_Position):
    bracket: Literal["WINNERS"] = "WINNERS"
    round: int
    position: int
    next_winners_match: Optional[int] = None
    next_winners_slot: Slot = Slot.A
    drop_losers_round: int
    drop_losers_position: int
    drop_losers_slot: Slot
    is_winners_final: bool = False


class LosersPosition(_Position):
    bracket: Literal["LOSERS"] = "LOSERS"
    round: int
    position: int
    next_losers_match: Optional[int] = None
    next_losers_slot: Slot = Slot.A
    is_losers_final: bool = False
    # Slots no entrant can reach (their feeder was a round-1 bye)
    vacant_slots: tuple[Slot, ...] = ()


class GrandFinalsPosition(_Position):
    bracket: Literal["GRAND_FINALS"] = "GRAND_FINALS"


BracketPosition = Annotated[
    Union[SinglePosition, WinnersPosition, LosersPosition, GrandFinalsPosition],
    Field(discriminator="bracket"),
]

_adapter: TypeAdapter[BracketPosition] = TypeAdapter(BracketPosition)


def parse_position(raw: Any) -> Optional[BracketPosition]:
    """Return the typed descriptor, or None when missing or malformed."""
    if not raw:
        return None
    try:
        return _adapter.validate_python(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed bracket position %r: %s", raw, e.errors()[0]["msg"])
        return None


def dump_position(position: BracketPosition) -> dict[str, Any]:
    """JSON-safe dict for storage."""
    return position.model_dump(mode="json")
