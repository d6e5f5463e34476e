"""
Odds conversion utilities.

Handles conversions between decimal odds, implied probabilities and the
two-decimal storage precision used for published prices.
"""

from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Iterable, Optional, Union

from config import settings

ODDS_QUANTUM = Decimal("0.01")

Number = Union[float, Decimal]


def decimal_to_implied_prob(odds: Number) -> float:
    """
    Convert decimal odds to implied probability.

    Args:
        odds: Decimal odds (e.g., 2.0 for evens)

    Returns:
        Implied probability as decimal (0.0 to 1.0)
    """
    odds = float(odds)
    if odds <= 1.0:
        return 1.0
    return 1.0 / odds


def implied_prob_to_decimal(prob: float, min_odds: Optional[float] = None) -> float:
    """
    Convert implied probability to decimal odds, floored at min_odds.

    Args:
        prob: Probability, strictly positive
        min_odds: Lowest odds ever returned (default from settings)

    Returns:
        Decimal odds
    """
    if min_odds is None:
        min_odds = settings.pricing.min_odds
    if prob <= 0.0:
        raise ValueError(f"Probability must be positive, got {prob}")
    return max(1.0 / prob, min_odds)


def quantize_odds(odds: Number) -> Decimal:
    """
    Round odds to storage precision (two decimal places, half up).

    Floats go through repr so 1.005 rounds as written, not as stored in binary.
    """
    if not isinstance(odds, Decimal):
        odds = Decimal(repr(float(odds)))
    return odds.quantize(ODDS_QUANTUM, rounding=ROUND_HALF_UP)


def format_odds(odds: Number) -> str:
    """Display string for a price, e.g. '2.00'."""
    return f"{quantize_odds(odds):.2f}"


def decimal_to_fractional(odds: Number, max_denominator: int = 100) -> str:
    """
    Fractional display of decimal odds: winnings per unit staked.

    Decimal("2.50") is "3/2" and Decimal("1.16") is "4/25". Prices
    without an exact fraction below max_denominator get the nearest one.
    """
    odds = quantize_odds(odds)
    if odds <= 1:
        return "0/1"

    profit = Fraction(odds - 1).limit_denominator(max_denominator)
    return f"{profit.numerator}/{profit.denominator}"


def calculate_overround(odds_list: Iterable[Number]) -> float:
    """
    Calculate the overround (book margin) for a set of odds.

    Args:
        odds_list: Decimal odds for all options

    Returns:
        Sum of implied probabilities minus one
        (e.g., 0.05 means a 105% book)
    """
    odds_list = list(odds_list)
    if not odds_list:
        return 0.0

    total_implied = sum(decimal_to_implied_prob(o) for o in odds_list)
    return total_implied - 1.0


def calculate_house_liability(stake: int, odds: Number) -> Decimal:
    """
    Net payout owed by the house if the staked option wins.

    Args:
        stake: Credits staked
        odds: Locked decimal odds

    Returns:
        stake * (odds - 1)
    """
    if not isinstance(odds, Decimal):
        odds = quantize_odds(odds)
    return stake * (odds - 1)
