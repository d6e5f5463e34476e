"""Bet creation and market reads."""

from stakebook.betting.service import MarketService, MarketView, OptionQuote

__all__ = [
    "MarketService",
    "MarketView",
    "OptionQuote",
]
