"""Utility functions."""

from stakebook.utils.odds import (
    ODDS_QUANTUM,
    calculate_house_liability,
    calculate_overround,
    decimal_to_fractional,
    decimal_to_implied_prob,
    format_odds,
    implied_prob_to_decimal,
    quantize_odds,
)
from stakebook.utils.retries import retry_while

__all__ = [
    # Odds utilities
    "ODDS_QUANTUM",
    "calculate_house_liability",
    "calculate_overround",
    "decimal_to_fractional",
    "decimal_to_implied_prob",
    "format_odds",
    "implied_prob_to_decimal",
    "quantize_odds",
    # Retry utilities
    "retry_while",
]
