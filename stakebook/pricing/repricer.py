"""
Odds repricing.

Turns house exposure into fresh prices for every option of a bet:

1. Target probability per option grows with exposure relative to the
   loss cap, so heavily backed options get shorter.
2. Targets are scaled uniformly so they sum to 1 + fee.
3. Each probability is inverted into decimal odds, floored at the
   minimum price, and rounded to storage precision.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Union

from config import settings
from config.logging_config import get_logger
from stakebook.errors import ConfigurationError
from stakebook.utils.odds import implied_prob_to_decimal, quantize_odds

logger = get_logger(__name__)


@dataclass
class RepricingResult:
    """Every stage of one repricing run, keyed by option ID."""

    target: dict[str, float] = field(default_factory=dict)
    normalized: dict[str, float] = field(default_factory=dict)
    odds: dict[str, Decimal] = field(default_factory=dict)

    @property
    def book_sum(self) -> float:
        """Sum of normalized probabilities (1 + fee unless empty)."""
        return sum(self.normalized.values())


class OddsRepricer:
    """
    Derives new odds from exposure, a loss cap and a fee.

    Parameters default to settings.pricing.
    """

    def __init__(
        self,
        base_probability: Optional[float] = None,
        exposure_weight: Optional[float] = None,
        probability_floor: Optional[float] = None,
        min_odds: Optional[float] = None,
    ) -> None:
        pricing = settings.pricing
        self.base_probability = (
            pricing.base_probability if base_probability is None else base_probability
        )
        self.exposure_weight = (
            pricing.exposure_weight if exposure_weight is None else exposure_weight
        )
        self.probability_floor = (
            pricing.probability_floor if probability_floor is None else probability_floor
        )
        self.min_odds = pricing.min_odds if min_odds is None else min_odds

        if self.probability_floor <= 0:
            raise ConfigurationError("Probability floor must be positive")

    def target_probabilities(
        self,
        exposure: Mapping[str, Union[Decimal, float]],
        loss_cap: Union[int, Decimal, float],
    ) -> dict[str, float]:
        """Map exposure to a target probability per option."""
        if loss_cap <= 0:
            raise ConfigurationError(f"Loss cap must be positive, got {loss_cap}")

        cap = float(loss_cap)
        targets: dict[str, float] = {}
        for option_id, option_exposure in exposure.items():
            exposure_factor = float(option_exposure) / cap
            targets[option_id] = max(
                self.base_probability + exposure_factor * self.exposure_weight,
                self.probability_floor,
            )
        return targets

    def normalize_with_margin(
        self,
        probabilities: Mapping[str, float],
        fee: Union[Decimal, float],
    ) -> dict[str, float]:
        """Scale probabilities uniformly so they sum to exactly 1 + fee."""
        if fee < 0:
            raise ConfigurationError(f"Fee must not be negative, got {fee}")

        if not probabilities:
            return {}

        total = sum(probabilities.values())
        factor = (1.0 + float(fee)) / total
        return {option_id: p * factor for option_id, p in probabilities.items()}

    def to_odds(self, probabilities: Mapping[str, float]) -> dict[str, Decimal]:
        """Invert probabilities into floored, storage-precision odds."""
        floor = quantize_odds(self.min_odds)
        odds: dict[str, Decimal] = {}
        for option_id, p in probabilities.items():
            price = quantize_odds(implied_prob_to_decimal(p, self.min_odds))
            # Rounding must not undercut the floor
            odds[option_id] = max(price, floor)
        return odds

    def reprice(
        self,
        exposure: Mapping[str, Union[Decimal, float]],
        loss_cap: Union[int, Decimal, float],
        fee: Union[Decimal, float],
    ) -> RepricingResult:
        """
        Run the full pipeline.

        Args:
            exposure: House exposure per option
            loss_cap: The bet's loss cap in credits (must be > 0)
            fee: The bet's margin as a fraction (0.05 = 5%)

        Returns:
            RepricingResult with targets, normalized probabilities and odds

        Raises:
            ConfigurationError: If loss_cap <= 0 or fee < 0
        """
        target = self.target_probabilities(exposure, loss_cap)
        normalized = self.normalize_with_margin(target, fee)
        odds = self.to_odds(normalized)

        logger.debug(
            "Odds repriced",
            loss_cap=loss_cap,
            fee=str(fee),
            odds={k: str(v) for k, v in odds.items()},
        )
        return RepricingResult(target=target, normalized=normalized, odds=odds)
