"""
Market administration and read models.

Creates bets with their opening prices, registers users, and serves the
quotes bettors see before staking.
"""

from dataclasses import dataclass, field
from datetime import timezone
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from config import settings
from config.logging_config import get_logger
from stakebook.database import (
    BetRepository,
    DatabaseConnection,
    StakeRepository,
    UserRepository,
    bet_from_record,
    db,
    stake_from_record,
)
from stakebook.database.schema import new_id
from stakebook.errors import BetValidationError, ConfigurationError
from stakebook.models import (
    Bet,
    BetCreateRequest,
    BetOption,
    OptionStatus,
    Stake,
    UserAccount,
)
from stakebook.utils.odds import calculate_overround, decimal_to_fractional, format_odds

logger = get_logger(__name__)


@dataclass
class OptionQuote:
    """Display view of one option's price."""

    option_id: str
    label: str
    status: OptionStatus
    odds: Decimal

    @property
    def display_odds(self) -> str:
        return format_odds(self.odds)

    @property
    def fractional_odds(self) -> str:
        return decimal_to_fractional(self.odds)

    @property
    def implied_probability(self) -> float:
        return 1.0 / float(self.odds)


@dataclass
class MarketView:
    """A bet as a bettor sees it."""

    bet: Bet
    quotes: list[OptionQuote] = field(default_factory=list)

    @property
    def overround(self) -> float:
        """Book margin implied by the published odds."""
        return calculate_overround(q.odds for q in self.quotes)

    def get_quote(self, option_id: str) -> Optional[OptionQuote]:
        for quote in self.quotes:
            if quote.option_id == option_id:
                return quote
        return None


class MarketService:
    """Bet creation, user registration and market reads."""

    def __init__(self, database: DatabaseConnection = db) -> None:
        self._db = database

    async def ensure_user(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        credits: Optional[int] = None,
    ) -> UserAccount:
        """
        Get a user, creating them with the default balance if missing.

        Args:
            user_id: Identity provider's user ID
            email: Contact email
            name: Display name
            credits: Opening balance (default from settings)

        Returns:
            The stored account
        """
        async with self._db.session() as session:
            users = UserRepository(session)
            record = await users.get(user_id)
            if record is None:
                account = UserAccount(
                    user_id=user_id,
                    email=email,
                    name=name,
                    credits=(
                        settings.market.default_user_credits if credits is None else credits
                    ),
                )
                record = await users.create(account)
                logger.info("User registered", user_id=user_id, credits=record.credits)

            return UserAccount(
                user_id=record.id,
                email=record.email,
                name=record.name,
                credits=record.credits,
            )

    async def get_balance(self, user_id: str) -> Optional[int]:
        """Get a user's credit balance."""
        async with self._db.session() as session:
            record = await UserRepository(session).get(user_id)
            return record.credits if record else None

    async def create_bet(
        self,
        creator_id: str,
        request: Union[BetCreateRequest, dict[str, Any]],
    ) -> Bet:
        """
        Create a bet with its options at the creator's opening odds.

        Args:
            creator_id: The user creating the bet
            request: Validated request, or raw fields to validate

        Returns:
            The stored bet with its options

        Raises:
            BetValidationError: If the request is invalid or the creator is unknown
            ConfigurationError: If the loss cap is not positive
        """
        if not isinstance(request, BetCreateRequest):
            try:
                request = BetCreateRequest.model_validate(request)
            except ValidationError as e:
                raise BetValidationError(
                    [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
                ) from e

        if request.loss_cap <= 0:
            raise ConfigurationError(f"Loss cap must be positive, got {request.loss_cap}")

        bet_id = new_id()
        bet = Bet(
            bet_id=bet_id,
            title=request.title,
            description=request.description,
            end_time=request.end_time.astimezone(timezone.utc),
            expiration_time=request.expiration_time.astimezone(timezone.utc),
            created_by=creator_id,
            fee=request.fee,
            loss_cap=request.loss_cap,
            options=[
                BetOption(
                    option_id=new_id(),
                    bet_id=bet_id,
                    label=label,
                    current_odds=odds,
                )
                for label, odds in zip(request.option_labels, request.option_odds)
            ],
        )

        async with self._db.session() as session:
            if await UserRepository(session).get(creator_id) is None:
                raise BetValidationError([f"Creator {creator_id} not found"])
            await BetRepository(session).save(bet)

        logger.info(
            "Bet created",
            bet_id=bet.bet_id,
            creator=creator_id,
            options=len(bet.options),
            loss_cap=bet.loss_cap,
            fee=str(bet.fee),
        )
        return bet

    async def get_market(self, bet_id: str) -> Optional[MarketView]:
        """Get a bet with the current quote for each option."""
        async with self._db.session() as session:
            record = await BetRepository(session).get_with_options(bet_id)
            if record is None:
                return None

            bet = bet_from_record(record, record.options)

        return MarketView(
            bet=bet,
            quotes=[
                OptionQuote(
                    option_id=o.option_id,
                    label=o.label,
                    status=o.status,
                    odds=o.current_odds,
                )
                for o in bet.options
            ],
        )

    async def list_user_stakes(self, user_id: str) -> list[Stake]:
        """Get a user's stakes with their locked odds."""
        async with self._db.session() as session:
            records = await StakeRepository(session).list_for_user(user_id)
            return [stake_from_record(r) for r in records]
