"""Database module."""

from stakebook.database.connection import DatabaseConnection, db
from stakebook.database.repositories import (
    BetRepository,
    OptionRepository,
    StakeRepository,
    UserRepository,
    bet_from_record,
    option_from_record,
    stake_from_record,
)
from stakebook.database.schema import (
    Base,
    BetRecord,
    OptionRecord,
    StakeRecord,
    UserRecord,
)

__all__ = [
    # Connection
    "DatabaseConnection",
    "db",
    # Repositories
    "BetRepository",
    "OptionRepository",
    "StakeRepository",
    "UserRepository",
    "bet_from_record",
    "option_from_record",
    "stake_from_record",
    # Schema
    "Base",
    "BetRecord",
    "OptionRecord",
    "StakeRecord",
    "UserRecord",
]
