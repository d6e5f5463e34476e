"""
Stake placement.

One stake is one transaction: validate, debit the bettor, record the
stake at the option's current price, then reprice every option of the
bet from the full set of persisted stakes. Any failure rolls back all
of it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from config.logging_config import get_logger
from stakebook.database import (
    BetRecord,
    BetRepository,
    DatabaseConnection,
    OptionRepository,
    StakeRepository,
    UserRepository,
    db,
)
from stakebook.errors import (
    BettingEnded,
    ConfigurationError,
    DuplicateStake,
    InsufficientCredits,
    InternalError,
    InvalidStakeRequest,
    MarketClosed,
    NotAuthenticated,
    OddsChanged,
    OptionNotFound,
    StakeErrorKind,
    StakeRejected,
    StorageConflict,
    UserNotFound,
)
from stakebook.identity import IdentityProvider
from stakebook.models import OptionStatus, Stake, StakeRequest, as_utc, utcnow
from stakebook.pricing import ExposureCalculator, OddsRepricer
from stakebook.utils.retries import retry_while

logger = get_logger(__name__)

# Serialization failure, deadlock, lock not available
CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def is_storage_conflict(exc: DBAPIError) -> bool:
    """Check if a database error is lock contention rather than a fault."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code in CONFLICT_SQLSTATES:
            return True

    if isinstance(exc, OperationalError):
        message = str(orig).lower()
        return "locked" in message or "busy" in message

    return False


@dataclass
class StakeResult:
    """Outcome of a stake placement."""

    success: bool
    error: Optional[StakeErrorKind] = None
    message: Optional[str] = None
    stake: Optional[Stake] = None
    new_odds: dict[str, Decimal] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        """Whether resubmitting the same request may succeed."""
        return self.error is not None and self.error.is_retryable

    @classmethod
    def rejected(cls, kind: StakeErrorKind, message: str) -> "StakeResult":
        return cls(success=False, error=kind, message=message)


class StakeTransaction:
    """
    Places stakes and keeps a bet's odds in line with house exposure.

    Every failure comes back as a StakeResult. Faults outside the known
    rejection kinds are logged and reported as INTERNAL_ERROR.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        database: DatabaseConnection = db,
        repricer: Optional[OddsRepricer] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._identity = identity
        self._db = database
        self._repricer = repricer or OddsRepricer()
        self._clock = clock

    async def place_stake(
        self,
        option_id: str,
        expected_odds: Union[Decimal, float, str],
        credits: int,
    ) -> StakeResult:
        """
        Stake credits on an option at the price the bettor was quoted.

        Args:
            option_id: The option to back
            expected_odds: Odds the bettor saw; must equal the current odds
            credits: Credits to stake (>= 1)

        Returns:
            StakeResult with the stake and republished odds on success,
            or the rejection kind and a user-facing message
        """
        user = await self._identity.current_user()
        if user is None:
            return self._reject(NotAuthenticated(), option_id=option_id)

        try:
            request = StakeRequest(
                option_id=option_id,
                expected_odds=expected_odds,
                credits=credits,
            )
        except ValidationError as e:
            logger.info("Invalid stake request", errors=e.error_count())
            return self._reject(InvalidStakeRequest(), option_id=option_id)

        log = logger.bind(user_id=user.user_id, option_id=request.option_id)

        try:
            async with self._db.session() as session:
                stake, new_odds = await self._execute(session, user.user_id, request)
        except StakeRejected as e:
            return self._reject(e, user_id=user.user_id, option_id=request.option_id)
        except ConfigurationError as e:
            log.error("Bet cannot be repriced", error=str(e))
            return StakeResult.rejected(StakeErrorKind.CONFIGURATION_ERROR, str(e))
        except DBAPIError as e:
            if not is_storage_conflict(e):
                log.exception("Database error placing stake")
                return self._reject(InternalError(), user_id=user.user_id)
            log.warning("Storage conflict placing stake", error=str(e.orig))
            return self._reject(StorageConflict(), user_id=user.user_id)
        except Exception:
            # The unit of work has already rolled back
            log.exception("Unexpected error placing stake")
            return self._reject(InternalError(), user_id=user.user_id)

        log.info(
            "Stake placed",
            credits=stake.staked,
            odds=str(stake.odds),
            new_odds={k: str(v) for k, v in new_odds.items()},
        )
        return StakeResult(success=True, stake=stake, new_odds=new_odds)

    async def place_stake_with_retry(
        self,
        option_id: str,
        expected_odds: Union[Decimal, float, str],
        credits: int,
        max_attempts: Optional[int] = None,
    ) -> StakeResult:
        """Like place_stake, but resubmits while the store reports a conflict."""
        return await retry_while(
            self.place_stake,
            option_id,
            expected_odds,
            credits,
            should_retry=lambda result: result.retryable,
            max_attempts=max_attempts,
        )

    async def _execute(
        self,
        session: AsyncSession,
        user_id: str,
        request: StakeRequest,
    ) -> tuple[Stake, dict[str, Decimal]]:
        options = OptionRepository(session)
        bets = BetRepository(session)
        stakes = StakeRepository(session)
        users = UserRepository(session)

        option = await options.get(request.option_id)
        if option is None:
            raise OptionNotFound()

        # Every stake on this bet queues behind this lock, then re-reads the price
        bet = await bets.get_for_update(option.bet_id)
        await session.refresh(option)

        if option.status != OptionStatus.OPEN.value:
            raise MarketClosed()

        if option.current_odds != request.expected_odds:
            raise OddsChanged()

        now = self._clock()
        if bet is None or now >= as_utc(bet.end_time):
            raise BettingEnded()

        if await stakes.exists(user_id, option.id):
            raise DuplicateStake()

        account = await users.get_for_update(user_id)
        if account is None:
            raise UserNotFound()

        if account.credits < request.credits:
            raise InsufficientCredits()

        # Validation done; from here on every write rolls back together
        await users.debit(user_id, request.credits)

        stake = Stake(
            user_id=user_id,
            option_id=option.id,
            staked=request.credits,
            odds=option.current_odds,
            created_at=now,
        )
        try:
            await stakes.add(stake)
        except IntegrityError as e:
            raise DuplicateStake() from e

        new_odds = await self._reprice(session, bet)
        return stake, new_odds

    async def _reprice(self, session: AsyncSession, bet: BetRecord) -> dict[str, Decimal]:
        """Recompute and persist odds for every option of a bet."""
        exposure = await ExposureCalculator(session).calculate(bet.id)
        result = self._repricer.reprice(exposure, bet.loss_cap, bet.fee)
        await OptionRepository(session).update_odds(bet.id, result.odds)
        return result.odds

    def _reject(self, error: StakeRejected, **context) -> StakeResult:
        logger.info("Stake rejected", reason=error.kind.value, **context)
        return StakeResult.rejected(error.kind, error.message)
