"""Errors raised by bracket services. All are ValueErrors so callers can map them to 400s."""


class BracketError(ValueError):
    """Base class for bracket engine errors."""


class InsufficientParticipantsError(BracketError):
    pass


class BracketAlreadyExistsError(BracketError):
    pass


class TournamentNotFoundError(BracketError):
    pass


class TournamentNotActiveError(BracketError):
    pass


class MatchNotFoundError(BracketError):
    pass


class MatchNotReadyError(BracketError):
    """Match has an empty slot that is not a bye."""


class MatchAlreadyCompletedError(BracketError):
    """Result was already recorded; duplicate submissions are rejected."""


class InvalidWinnerError(BracketError):
    pass


class InvalidScoreError(BracketError):
    pass
