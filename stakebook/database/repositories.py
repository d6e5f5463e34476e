"""
Database repositories for CRUD operations.

Provides clean interfaces for interacting with database tables. Methods
never commit; the caller's unit of work decides.
"""

from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config.logging_config import get_logger
from stakebook.database.schema import (
    BetRecord,
    OptionRecord,
    StakeRecord,
    UserRecord,
)
from stakebook.models import Bet, BetOption, OptionStatus, Stake, UserAccount

logger = get_logger(__name__)


def option_from_record(record: OptionRecord) -> BetOption:
    return BetOption(
        option_id=record.id,
        bet_id=record.bet_id,
        label=record.label,
        current_odds=record.current_odds,
        status=OptionStatus(record.status),
    )


def bet_from_record(record: BetRecord, options: Iterable[OptionRecord] = ()) -> Bet:
    return Bet(
        bet_id=record.id,
        title=record.title,
        description=record.description,
        end_time=record.end_time,
        expiration_time=record.expiration_time,
        created_by=record.created_by,
        fee=record.fee,
        loss_cap=record.loss_cap,
        created_at=record.created_at,
        options=[option_from_record(o) for o in options],
    )


def stake_from_record(record: StakeRecord) -> Stake:
    return Stake(
        user_id=record.user_id,
        option_id=record.option_id,
        staked=record.staked,
        odds=record.odds,
        created_at=record.created_at,
    )


class UserRepository:
    """Repository for users and their credit balance."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[UserRecord]:
        """Get a user by ID."""
        return await self.session.get(UserRecord, user_id)

    async def get_for_update(self, user_id: str) -> Optional[UserRecord]:
        """Get a user with a write lock on the balance row."""
        result = await self.session.execute(
            select(UserRecord).where(UserRecord.id == user_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def create(self, account: UserAccount) -> UserRecord:
        """Create a new user."""
        record = UserRecord(
            id=account.user_id,
            name=account.name,
            email=account.email,
            credits=account.credits,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def debit(self, user_id: str, amount: int) -> None:
        """Subtract credits from a user's balance."""
        await self.session.execute(
            update(UserRecord)
            .where(UserRecord.id == user_id)
            .values(credits=UserRecord.credits - amount)
        )


class BetRepository:
    """Repository for bets and their options."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, bet: Bet) -> str:
        """Save a new bet with its options and return its ID."""
        record = BetRecord(
            id=bet.bet_id,
            title=bet.title,
            description=bet.description,
            end_time=bet.end_time,
            expiration_time=bet.expiration_time,
            created_by=bet.created_by,
            created_at=bet.created_at,
            fee=bet.fee,
            loss_cap=bet.loss_cap,
        )
        self.session.add(record)
        for position, option in enumerate(bet.options):
            self.session.add(
                OptionRecord(
                    id=option.option_id,
                    bet_id=bet.bet_id,
                    label=option.label,
                    position=position,
                    status=option.status.value,
                    current_odds=option.current_odds,
                )
            )
        await self.session.flush()
        return record.id

    async def get(self, bet_id: str) -> Optional[BetRecord]:
        """Get a bet by ID."""
        return await self.session.get(BetRecord, bet_id)

    async def get_for_update(self, bet_id: str) -> Optional[BetRecord]:
        """
        Get a bet with a write lock on its row.

        Holding this lock serializes every stake on the bet, so sibling
        options are never repriced from the same stale snapshot.
        """
        result = await self.session.execute(
            select(BetRecord).where(BetRecord.id == bet_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_with_options(self, bet_id: str) -> Optional[BetRecord]:
        """Get a bet with its options eagerly loaded."""
        result = await self.session.execute(
            select(BetRecord)
            .where(BetRecord.id == bet_id)
            .options(selectinload(BetRecord.options))
        )
        return result.scalar_one_or_none()


class OptionRepository:
    """Repository for bet options."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, option_id: str) -> Optional[OptionRecord]:
        """Get an option by ID."""
        return await self.session.get(OptionRecord, option_id)

    async def update_odds(self, bet_id: str, new_odds: dict[str, Decimal]) -> None:
        """Replace the current odds of every given option of a bet."""
        for option_id, odds in new_odds.items():
            await self.session.execute(
                update(OptionRecord)
                .where(OptionRecord.id == option_id)
                .where(OptionRecord.bet_id == bet_id)
                .values(current_odds=odds)
            )


class StakeRepository:
    """Repository for placed stakes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, user_id: str, option_id: str) -> bool:
        """Check if a user already holds a stake on an option."""
        record = await self.session.get(StakeRecord, (user_id, option_id))
        return record is not None

    async def add(self, stake: Stake) -> None:
        """Insert a new stake."""
        self.session.add(
            StakeRecord(
                user_id=stake.user_id,
                option_id=stake.option_id,
                staked=stake.staked,
                odds=stake.odds,
                created_at=stake.created_at,
            )
        )
        await self.session.flush()

    async def get_positions_for_bet(
        self, bet_id: str
    ) -> list[tuple[str, Optional[int], Optional[Decimal]]]:
        """
        Get every option of a bet with the stakes placed on it.

        One row per stake, plus one row with empty stake columns for
        options nobody has staked yet.
        """
        result = await self.session.execute(
            select(OptionRecord.id, StakeRecord.staked, StakeRecord.odds)
            .select_from(OptionRecord)
            .outerjoin(StakeRecord, StakeRecord.option_id == OptionRecord.id)
            .where(OptionRecord.bet_id == bet_id)
            .order_by(OptionRecord.position)
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

    async def list_for_user(self, user_id: str) -> list[StakeRecord]:
        """Get a user's stakes, newest first."""
        result = await self.session.execute(
            select(StakeRecord)
            .where(StakeRecord.user_id == user_id)
            .order_by(StakeRecord.created_at.desc())
        )
        return list(result.scalars().all())
