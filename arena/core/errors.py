"""
Error taxonomy for tournament and wallet operations.

Every error carries an ErrorKind so callers can branch on the kind instead
of inspecting messages.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    AUTHORIZATION = "authorization_error"
    STATE = "state_error"
    TOO_EARLY = "too_early_error"
    CAPACITY = "capacity_error"
    DUPLICATE_PARTICIPANT = "duplicate_participant_error"
    INSUFFICIENT_FUNDS = "insufficient_funds_error"
    CONCURRENCY = "concurrency_error"
    NOT_FOUND = "not_found_error"
    DUPLICATE_WINNER = "duplicate_winner_error"
    STALE_CALCULATION = "stale_calculation_error"


class ArenaError(Exception):
    """Base class for all business errors"""
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "message": self.message}


class ValidationError(ArenaError):
    kind = ErrorKind.VALIDATION


class AuthorizationError(ArenaError):
    kind = ErrorKind.AUTHORIZATION


class StateError(ArenaError):
    kind = ErrorKind.STATE


class TooEarlyError(ArenaError):
    """Start requested before the start window opened"""
    kind = ErrorKind.TOO_EARLY

    def __init__(self, message: str, minutes_remaining: int):
        super().__init__(message)
        self.minutes_remaining = minutes_remaining

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["minutes_remaining"] = self.minutes_remaining
        return data


class CapacityError(ArenaError):
    kind = ErrorKind.CAPACITY


class DuplicateParticipantError(ArenaError):
    kind = ErrorKind.DUPLICATE_PARTICIPANT


class InsufficientFundsError(ArenaError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class ConcurrencyError(ArenaError):
    kind = ErrorKind.CONCURRENCY


class NotFoundError(ArenaError):
    kind = ErrorKind.NOT_FOUND


class DuplicateWinnerError(ArenaError):
    kind = ErrorKind.DUPLICATE_WINNER


class StaleCalculationError(ArenaError):
    kind = ErrorKind.STALE_CALCULATION

    def __init__(self, message: str, expected: Optional[int] = None):
        super().__init__(message)
        self.expected = expected


class WriteConflict(Exception):
    """A conditional write lost against a concurrent update of the same document"""
