"""Exposure aggregation and odds repricing."""

from stakebook.pricing.exposure import ExposureCalculator, aggregate_exposure
from stakebook.pricing.repricer import OddsRepricer, RepricingResult

__all__ = [
    "ExposureCalculator",
    "OddsRepricer",
    "RepricingResult",
    "aggregate_exposure",
]
