"""Data models for the betting market."""

from stakebook.models.market import (
    Bet,
    BetOption,
    OptionStatus,
    Stake,
    UserAccount,
    as_utc,
    utcnow,
)
from stakebook.models.requests import BetCreateRequest, StakeRequest

__all__ = [
    # Market models
    "Bet",
    "BetOption",
    "OptionStatus",
    "Stake",
    "UserAccount",
    "as_utc",
    "utcnow",
    # Requests
    "BetCreateRequest",
    "StakeRequest",
]
