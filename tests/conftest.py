"""Shared fixtures: a throwaway SQLite market per test."""

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable

import pytest

from stakebook.betting import MarketService
from stakebook.database import DatabaseConnection
from stakebook.models import Bet, utcnow


async def _seed_market(
    service: MarketService,
    labels: tuple[str, ...] = ("A", "B"),
    odds: tuple[str, ...] = ("2.00", "2.00"),
    loss_cap: int = 100,
    fee: str = "0.05",
) -> Bet:
    await service.ensure_user("creator", "creator@example.com", name="Creator")
    return await service.create_bet(
        "creator",
        {
            "title": "Derby",
            "description": "Who wins the derby?",
            "end_time": utcnow() + timedelta(days=1),
            "expiration_time": utcnow() + timedelta(days=2),
            "option_labels": list(labels),
            "option_odds": list(odds),
            "fee": fee,
            "loss_cap": loss_cap,
        },
    )


@pytest.fixture
def seed_market():
    """Create a creator and a bet (A/B at 2.00, loss cap 100, fee 5%)."""
    return _seed_market


@pytest.fixture
def run_market(tmp_path) -> Callable:
    """
    Run an async scenario against a fresh database.

    The scenario receives (database, service). Everything happens inside a
    single event loop, since pooled async connections cannot cross loops.
    """
    url = f"sqlite:///{tmp_path / 'stakebook.db'}"

    def runner(scenario: Callable[[DatabaseConnection, MarketService], Awaitable]):
        async def main():
            database = DatabaseConnection()
            await database.initialize(url)
            try:
                return await scenario(database, MarketService(database))
            finally:
                await database.close()

        return asyncio.run(main())

    return runner
