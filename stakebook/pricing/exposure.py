"""
House exposure per option.

Exposure on an option is what the house pays out, net of stakes already
collected, if that option wins: the sum of stake * (locked odds - 1)
over every stake on it.
"""

from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config.logging_config import get_logger
from stakebook.database.repositories import StakeRepository
from stakebook.utils.odds import calculate_house_liability

logger = get_logger(__name__)

ZERO = Decimal("0")


def aggregate_exposure(
    positions: Iterable[tuple[str, Optional[int], Optional[Decimal]]],
) -> dict[str, Decimal]:
    """
    Fold (option_id, staked, odds) rows into exposure per option.

    Rows with no stake still register their option at zero exposure.
    """
    exposure: dict[str, Decimal] = {}
    for option_id, staked, odds in positions:
        exposure.setdefault(option_id, ZERO)
        if staked is not None and odds is not None:
            exposure[option_id] += calculate_house_liability(staked, odds)
    return exposure


class ExposureCalculator:
    """
    Read-only exposure aggregation over persisted stakes.

    Runs against the caller's session so the snapshot it reads is the
    same one the repricer's writes are committed against.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._stakes = StakeRepository(session)

    async def calculate(self, bet_id: str) -> dict[str, Decimal]:
        """
        Compute exposure for every option of a bet.

        Args:
            bet_id: The bet to aggregate

        Returns:
            Mapping of option ID to house exposure in credits
        """
        positions = await self._stakes.get_positions_for_bet(bet_id)
        exposure = aggregate_exposure(positions)

        logger.debug(
            "Exposure calculated",
            bet_id=bet_id,
            exposure={k: str(v) for k, v in exposure.items()},
        )
        return exposure
