"""Retry helper tests."""

import asyncio

import pytest

from stakebook.utils.retries import retry_while


def test_retries_until_result_is_acceptable():
    calls = []

    async def busy_then_done():
        calls.append(1)
        return "busy" if len(calls) < 3 else "done"

    result = asyncio.run(
        retry_while(
            busy_then_done,
            should_retry=lambda r: r == "busy",
            max_attempts=5,
            wait_seconds=0,
        )
    )
    assert result == "done"
    assert len(calls) == 3


def test_returns_last_result_when_attempts_run_out():
    calls = []

    async def always_busy(tag):
        calls.append(tag)
        return "busy"

    result = asyncio.run(
        retry_while(
            always_busy,
            "x",
            should_retry=lambda r: r == "busy",
            max_attempts=2,
            wait_seconds=0,
        )
    )
    assert result == "busy"
    assert calls == ["x", "x"]


def test_exceptions_propagate_without_retry():
    calls = []

    async def broken():
        calls.append(1)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(retry_while(broken, should_retry=lambda r: False, max_attempts=3, wait_seconds=0))
    assert len(calls) == 1
