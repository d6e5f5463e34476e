#!/usr/bin/env python3
"""
Demo Market Script.

Seeds a two-option bet, places stakes against it and prints the odds
republished after each one.
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse

from config import settings
from config.logging_config import get_logger, log_context, setup_logging
from stakebook.betting import MarketService, MarketView
from stakebook.database import db
from stakebook.identity import StaticIdentityProvider
from stakebook.models import utcnow
from stakebook.staking import StakeTransaction

logger = get_logger(__name__)


def print_market(view: MarketView) -> None:
    print(f"\n{view.bet.title} (fee {view.bet.fee:.0%}, loss cap {view.bet.loss_cap})")
    for quote in view.quotes:
        print(
            f"  {quote.label:<12} {quote.display_odds:>7}"
            f"  ({quote.fractional_odds}, {quote.implied_probability:.1%})"
        )
    print(f"  overround: {view.overround:+.2%}")


async def main(
    stakes: list[tuple[str, int]],
    loss_cap: int,
    fee: str,
    database_url: str | None = None,
) -> None:
    """
    Run the demo.

    Args:
        stakes: (option label, credits) pairs, placed in order by separate users
        loss_cap: Bet loss cap in credits
        fee: House margin as a fraction
        database_url: Overrides DATABASE_URL
    """
    setup_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        json_format=settings.log_json,
    )
    await db.initialize(database_url)

    try:
        service = MarketService(db)
        await service.ensure_user("creator", "creator@example.com", name="Creator")

        bet = await service.create_bet(
            "creator",
            {
                "title": "Demo match",
                "description": "Who wins the demo match?",
                "end_time": utcnow() + timedelta(days=1),
                "expiration_time": utcnow() + timedelta(days=2),
                "option_labels": ["Home", "Away"],
                "option_odds": ["2.00", "2.00"],
                "fee": fee,
                "loss_cap": loss_cap,
            },
        )
        labels = {o.label: o.option_id for o in bet.options}
        logger.info("Demo market ready", bet_id=bet.bet_id, stakes=len(stakes))
        print_market(await service.get_market(bet.bet_id))

        for n, (label, credits) in enumerate(stakes, start=1):
            option_id = labels.get(label)
            if option_id is None:
                print(f"\nUnknown option {label!r}, expected one of {sorted(labels)}")
                continue

            user_id = f"bettor-{n}"
            await service.ensure_user(user_id, f"{user_id}@example.com")

            view = await service.get_market(bet.bet_id)
            quote = view.get_quote(option_id)
            transaction = StakeTransaction(StaticIdentityProvider(user_id), db)
            with log_context(bet_id=bet.bet_id, stake_no=n):
                result = await transaction.place_stake_with_retry(
                    option_id, quote.odds, credits
                )

            if result.success:
                print(f"\n{user_id} staked {credits} on {label} at {quote.display_odds}")
            else:
                print(f"\n{user_id} rejected: {result.message} ({result.error.value})")

            print_market(await service.get_market(bet.bet_id))

    finally:
        await db.close()


def parse_stake(value: str) -> tuple[str, int]:
    label, _, credits = value.partition(":")
    if not credits:
        raise argparse.ArgumentTypeError("Stakes look like LABEL:CREDITS, e.g. Home:50")
    return label, int(credits)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a demo betting market")

    parser.add_argument(
        "stakes",
        nargs="*",
        type=parse_stake,
        default=[("Home", 50)],
        help="Stakes to place as LABEL:CREDITS (default: Home:50)",
    )

    parser.add_argument(
        "--loss-cap",
        type=int,
        default=100,
        help="Bet loss cap in credits",
    )

    parser.add_argument(
        "--fee",
        type=str,
        default="0.05",
        help="House margin as a fraction",
    )

    parser.add_argument(
        "--database-url",
        type=str,
        help="Database URL, defaults to DATABASE_URL",
    )

    args = parser.parse_args()

    print("=" * 50)
    print("Stakebook Demo Market")
    print("=" * 50)

    asyncio.run(
        main(
            stakes=args.stakes,
            loss_cap=args.loss_cap,
            fee=args.fee,
            database_url=args.database_url,
        )
    )
