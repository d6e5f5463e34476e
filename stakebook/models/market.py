"""
Market data models.

A bet is a proposition with mutually exclusive options. Each option
carries the odds at which the next stake on it will be accepted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class OptionStatus(str, Enum):
    """Lifecycle of a single outcome."""

    OPEN = "open"
    WON = "won"
    LOST = "lost"


@dataclass
class BetOption:
    """One outcome of a bet."""

    option_id: str
    bet_id: str
    label: str
    current_odds: Decimal
    status: OptionStatus = OptionStatus.OPEN

    @property
    def is_open(self) -> bool:
        """Check if stakes are accepted on this option."""
        return self.status == OptionStatus.OPEN

    @property
    def implied_probability(self) -> float:
        """Implied probability of the current price."""
        return 1.0 / float(self.current_odds)


@dataclass
class Bet:
    """A proposition bet owned by its creator."""

    bet_id: str
    title: str
    description: str
    end_time: datetime
    expiration_time: datetime
    created_by: str
    fee: Decimal
    loss_cap: int
    created_at: datetime = field(default_factory=utcnow)
    options: list[BetOption] = field(default_factory=list)

    def accepts_stakes(self, now: Optional[datetime] = None) -> bool:
        """Check if the betting window is still open."""
        now = now or utcnow()
        return now < as_utc(self.end_time)

    def get_option(self, option_id: str) -> Optional[BetOption]:
        """Get option by ID."""
        for option in self.options:
            if option.option_id == option_id:
                return option
        return None

    @property
    def overround(self) -> float:
        """Sum of implied probabilities minus one (the book margin)."""
        if not self.options:
            return 0.0
        return sum(o.implied_probability for o in self.options) - 1.0


@dataclass
class Stake:
    """A bettor's position on one option, at the odds locked in at placement."""

    user_id: str
    option_id: str
    staked: int
    odds: Decimal
    created_at: datetime = field(default_factory=utcnow)

    @property
    def potential_return(self) -> Decimal:
        """Amount paid back if the option wins, principal included."""
        return self.staked * self.odds

    @property
    def house_liability(self) -> Decimal:
        """What the house pays out net of the collected stake."""
        return self.staked * (self.odds - 1)


@dataclass
class UserAccount:
    """A registered user and their credit balance."""

    user_id: str
    email: str
    credits: int
    name: Optional[str] = None


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from stores without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
