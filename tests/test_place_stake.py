"""Stake transaction tests against a real SQLite store."""

import asyncio
import sqlite3
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from config import settings
from stakebook.database import OptionRecord, StakeRecord
from stakebook.errors import ConfigurationError, StakeErrorKind
from stakebook.identity import StaticIdentityProvider
from stakebook.models import utcnow
from stakebook.pricing import OddsRepricer
from stakebook.staking import StakeResult, StakeTransaction, is_storage_conflict


def stake_as(database, user_id, **kwargs):
    return StakeTransaction(StaticIdentityProvider(user_id), database, **kwargs)


async def snapshot(database, bet_id):
    """Balances, stakes and odds, for before/after comparisons."""
    async with database.session() as session:
        odds = (
            await session.execute(
                select(OptionRecord.id, OptionRecord.current_odds)
                .where(OptionRecord.bet_id == bet_id)
                .order_by(OptionRecord.id)
            )
        ).all()
        stakes = (
            await session.execute(
                select(StakeRecord.user_id, StakeRecord.option_id, StakeRecord.staked)
                .order_by(StakeRecord.user_id, StakeRecord.option_id)
            )
        ).all()
    return [tuple(r) for r in odds], [tuple(r) for r in stakes]


def test_concrete_scenario(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        a, b = (o.option_id for o in bet.options)
        await service.ensure_user("alice", "alice@example.com")
        await service.ensure_user("bob", "bob@example.com")

        accepted = await stake_as(database, "alice").place_stake(a, Decimal("2.00"), 50)
        stale = await stake_as(database, "bob").place_stake(a, Decimal("2.00"), 10)

        view = await service.get_market(bet.bet_id)
        return a, b, accepted, stale, view, await service.get_balance("alice")

    a, b, accepted, stale, view, balance = run_market(scenario)

    assert accepted.success
    assert accepted.stake.odds == Decimal("2.00")
    assert accepted.stake.staked == 50
    assert accepted.new_odds == {a: Decimal("1.16"), b: Decimal("5.24")}
    assert view.get_quote(a).odds == Decimal("1.16")
    assert view.get_quote(b).display_odds == "5.24"
    assert balance == 950

    assert not stale.success
    assert stale.error == StakeErrorKind.ODDS_CHANGED


def test_insufficient_credits_changes_nothing(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        a = bet.options[0].option_id
        await service.ensure_user("poor", "poor@example.com", credits=10)

        before = await snapshot(database, bet.bet_id)
        result = await stake_as(database, "poor").place_stake(a, "2.00", 50)
        after = await snapshot(database, bet.bet_id)
        return result, before, after, await service.get_balance("poor")

    result, before, after, balance = run_market(scenario)
    assert result.error == StakeErrorKind.INSUFFICIENT_CREDITS
    assert before == after
    assert balance == 10


def test_exact_balance_is_enough(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        await service.ensure_user("exact", "exact@example.com", credits=25)
        result = await stake_as(database, "exact").place_stake(
            bet.options[1].option_id, "2.00", 25
        )
        return result, await service.get_balance("exact")

    result, balance = run_market(scenario)
    assert result.success
    assert balance == 0


def test_duplicate_stake_rejected_without_mutation(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        a = bet.options[0].option_id
        await service.ensure_user("alice", "alice@example.com")

        first = await stake_as(database, "alice").place_stake(a, "2.00", 50)
        before = await snapshot(database, bet.bet_id)
        again = await stake_as(database, "alice").place_stake(a, first.new_odds[a], 5)
        after = await snapshot(database, bet.bet_id)
        return first, again, before, after, await service.get_balance("alice")

    first, again, before, after, balance = run_market(scenario)
    assert first.success
    assert again.error == StakeErrorKind.DUPLICATE_STAKE
    assert before == after
    assert balance == 950


def test_same_user_may_back_another_option(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        a, b = (o.option_id for o in bet.options)
        await service.ensure_user("alice", "alice@example.com")

        first = await stake_as(database, "alice").place_stake(a, "2.00", 50)
        second = await stake_as(database, "alice").place_stake(b, first.new_odds[b], 10)
        return second, await service.list_user_stakes("alice")

    second, stakes = run_market(scenario)
    assert second.success
    assert second.stake.odds == Decimal("5.24")
    assert len(stakes) == 2
    assert {s.potential_return for s in stakes} == {Decimal("100.00"), Decimal("52.40")}


def test_unknown_option(run_market, seed_market):
    async def scenario(database, service):
        await seed_market(service)
        await service.ensure_user("alice", "alice@example.com")
        return await stake_as(database, "alice").place_stake("no-such-option", "2.00", 5)

    result = run_market(scenario)
    assert result.error == StakeErrorKind.OPTION_NOT_FOUND
    assert result.message == "Option not found"


def test_closed_option(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        a = bet.options[0].option_id
        await service.ensure_user("alice", "alice@example.com")
        async with database.session() as session:
            await session.execute(
                update(OptionRecord).where(OptionRecord.id == a).values(status="lost")
            )
        return await stake_as(database, "alice").place_stake(a, "2.00", 5)

    result = run_market(scenario)
    assert result.error == StakeErrorKind.MARKET_CLOSED


def test_betting_period_over(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        await service.ensure_user("alice", "alice@example.com")
        late = lambda: utcnow() + timedelta(days=3)
        return await stake_as(database, "alice", clock=late).place_stake(
            bet.options[0].option_id, "2.00", 5
        )

    result = run_market(scenario)
    assert result.error == StakeErrorKind.BETTING_ENDED


def test_requires_a_signed_in_user(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        transaction = StakeTransaction(StaticIdentityProvider(None), database)
        return await transaction.place_stake(bet.options[0].option_id, "2.00", 5)

    result = run_market(scenario)
    assert result.error == StakeErrorKind.NOT_AUTHENTICATED


def test_unregistered_user(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        return await stake_as(database, "ghost").place_stake(
            bet.options[0].option_id, "2.00", 5
        )

    result = run_market(scenario)
    assert result.error == StakeErrorKind.USER_NOT_FOUND


@pytest.mark.parametrize("credits", [0, -5])
def test_invalid_credit_amount(run_market, seed_market, credits):
    async def scenario(database, service):
        bet = await seed_market(service)
        await service.ensure_user("alice", "alice@example.com")
        return await stake_as(database, "alice").place_stake(
            bet.options[0].option_id, "2.00", credits
        )

    result = run_market(scenario)
    assert result.error == StakeErrorKind.INVALID_REQUEST


def test_failed_repricing_rolls_back_debit_and_stake(run_market, seed_market):
    class BrokenRepricer(OddsRepricer):
        def reprice(self, exposure, loss_cap, fee):
            raise ConfigurationError("pricing unavailable")

    async def scenario(database, service):
        bet = await seed_market(service)
        await service.ensure_user("alice", "alice@example.com")

        before = await snapshot(database, bet.bet_id)
        result = await stake_as(database, "alice", repricer=BrokenRepricer()).place_stake(
            bet.options[0].option_id, "2.00", 50
        )
        after = await snapshot(database, bet.bet_id)
        return result, before, after, await service.get_balance("alice")

    result, before, after, balance = run_market(scenario)
    assert result.error == StakeErrorKind.CONFIGURATION_ERROR
    assert before == after
    assert balance == 1000


def test_unexpected_failure_is_reported_after_rollback(run_market, seed_market):
    class ExplodingRepricer(OddsRepricer):
        def reprice(self, exposure, loss_cap, fee):
            raise ZeroDivisionError("boom")

    async def scenario(database, service):
        bet = await seed_market(service)
        await service.ensure_user("alice", "alice@example.com")

        before = await snapshot(database, bet.bet_id)
        result = await stake_as(database, "alice", repricer=ExplodingRepricer()).place_stake(
            bet.options[0].option_id, "2.00", 50
        )
        after = await snapshot(database, bet.bet_id)
        return result, before, after, await service.get_balance("alice")

    result, before, after, balance = run_market(scenario)
    assert not result.success
    assert result.error == StakeErrorKind.INTERNAL_ERROR
    assert result.message == "An unexpected error occurred"
    assert not result.retryable
    assert before == after
    assert balance == 1000


def test_concurrent_stakes_on_sibling_options_are_serialized(run_market, seed_market):
    async def scenario(database, service):
        bet = await seed_market(service)
        a, b = (o.option_id for o in bet.options)
        await service.ensure_user("alice", "alice@example.com")
        await service.ensure_user("bob", "bob@example.com")

        results = await asyncio.gather(
            stake_as(database, "alice").place_stake(a, "2.00", 50),
            stake_as(database, "bob").place_stake(b, "2.00", 50),
        )
        async with database.session() as session:
            count = await session.scalar(select(func.count()).select_from(StakeRecord))
        return results, count

    results, count = run_market(scenario)
    outcomes = sorted(r.error.value if r.error else "ok" for r in results)
    assert outcomes == ["odds_changed", "ok"]
    assert count == 1


def test_lock_timeout_is_reported_as_storage_conflict(run_market, seed_market, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "lock_timeout_ms", 50)

    async def scenario(database, service):
        bet = await seed_market(service)
        await service.ensure_user("alice", "alice@example.com")
        before = await snapshot(database, bet.bet_id)

        # Another writer holds the database lock for the whole attempt
        holder = sqlite3.connect(tmp_path / "stakebook.db", isolation_level=None)
        try:
            holder.execute("BEGIN IMMEDIATE")
            result = await stake_as(database, "alice").place_stake(
                bet.options[0].option_id, "2.00", 50
            )
            holder.execute("ROLLBACK")
        finally:
            holder.close()

        after = await snapshot(database, bet.bet_id)
        return result, before, after, await service.get_balance("alice")

    result, before, after, balance = run_market(scenario)
    assert result.error == StakeErrorKind.STORAGE_CONFLICT
    assert result.retryable
    assert before == after
    assert balance == 1000


def test_storage_conflict_classification():
    locked = OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))
    assert is_storage_conflict(locked)

    class SerializationFailure(Exception):
        sqlstate = "40001"

    assert is_storage_conflict(DBAPIError("UPDATE users", {}, SerializationFailure()))

    duplicate = IntegrityError("INSERT INTO stakes", {}, Exception("UNIQUE constraint failed"))
    assert not is_storage_conflict(duplicate)


def test_retry_resubmits_only_on_storage_conflict(run_market, seed_market):
    async def scenario(database, service):
        transaction = stake_as(database, "alice")
        calls = []

        async def flaky(option_id, expected_odds, credits):
            calls.append(option_id)
            if len(calls) < 3:
                return StakeResult.rejected(StakeErrorKind.STORAGE_CONFLICT, "busy")
            return StakeResult(success=True)

        transaction.place_stake = flaky
        result = await transaction.place_stake_with_retry("opt", "2.00", 5, max_attempts=5)
        return result, calls

    result, calls = run_market(scenario)
    assert result.success
    assert len(calls) == 3


def test_retry_does_not_repeat_business_rejections(run_market, seed_market):
    async def scenario(database, service):
        transaction = stake_as(database, "alice")
        calls = []

        async def rejected(option_id, expected_odds, credits):
            calls.append(option_id)
            return StakeResult.rejected(StakeErrorKind.ODDS_CHANGED, "Odds have changed")

        transaction.place_stake = rejected
        result = await transaction.place_stake_with_retry("opt", "2.00", 5, max_attempts=5)
        return result, calls

    result, calls = run_market(scenario)
    assert result.error == StakeErrorKind.ODDS_CHANGED
    assert len(calls) == 1
