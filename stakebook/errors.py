"""
Error taxonomy for stake placement and market configuration.

Every StakeRejected carries the kind the caller receives in its
StakeResult. Raising one inside a unit of work rolls the whole
transaction back.
"""

from enum import Enum


class StakeErrorKind(str, Enum):
    """Why a stake was not accepted."""

    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_REQUEST = "invalid_request"
    OPTION_NOT_FOUND = "option_not_found"
    MARKET_CLOSED = "market_closed"
    ODDS_CHANGED = "odds_changed"
    BETTING_ENDED = "betting_ended"
    DUPLICATE_STAKE = "duplicate_stake"
    USER_NOT_FOUND = "user_not_found"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    STORAGE_CONFLICT = "storage_conflict"
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"

    @property
    def is_retryable(self) -> bool:
        """Only lock contention at the store is worth retrying as-is."""
        return self == StakeErrorKind.STORAGE_CONFLICT


class StakeRejected(Exception):
    """Base class for expected stake placement failures."""

    kind: StakeErrorKind = StakeErrorKind.INVALID_REQUEST
    default_message: str = "Stake rejected"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticated(StakeRejected):
    kind = StakeErrorKind.NOT_AUTHENTICATED
    default_message = "You must be signed in to place a stake"


class InvalidStakeRequest(StakeRejected):
    kind = StakeErrorKind.INVALID_REQUEST
    default_message = "Invalid form data"


class OptionNotFound(StakeRejected):
    kind = StakeErrorKind.OPTION_NOT_FOUND
    default_message = "Option not found"


class MarketClosed(StakeRejected):
    kind = StakeErrorKind.MARKET_CLOSED
    default_message = "Betting is closed for this option"


class OddsChanged(StakeRejected):
    kind = StakeErrorKind.ODDS_CHANGED
    default_message = "Odds have changed"


class BettingEnded(StakeRejected):
    kind = StakeErrorKind.BETTING_ENDED
    default_message = "Betting period has ended"


class DuplicateStake(StakeRejected):
    kind = StakeErrorKind.DUPLICATE_STAKE
    default_message = "You have already placed a bet on this option"


class UserNotFound(StakeRejected):
    kind = StakeErrorKind.USER_NOT_FOUND
    default_message = "User not found"


class InsufficientCredits(StakeRejected):
    kind = StakeErrorKind.INSUFFICIENT_CREDITS
    default_message = "Not enough credits"


class StorageConflict(StakeRejected):
    kind = StakeErrorKind.STORAGE_CONFLICT
    default_message = "The market is busy, please try again"


class InternalError(StakeRejected):
    kind = StakeErrorKind.INTERNAL_ERROR
    default_message = "An unexpected error occurred"


class ConfigurationError(ValueError):
    """A bet's pricing parameters cannot be used (e.g. non-positive loss cap)."""


class BetValidationError(ValueError):
    """A bet creation request failed validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))
