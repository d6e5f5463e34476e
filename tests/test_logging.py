"""Logging helpers."""

from decimal import Decimal

import structlog

from config.logging_config import log_context, render_decimals


def test_decimals_render_as_written():
    event = render_decimals(None, "info", {"event": "Stake placed", "odds": Decimal("1.16"), "credits": 50})
    assert event == {"event": "Stake placed", "odds": "1.16", "credits": 50}


def test_log_context_is_scoped_to_the_block():
    with log_context(bet_id="b-1"):
        assert structlog.contextvars.get_contextvars()["bet_id"] == "b-1"
    assert "bet_id" not in structlog.contextvars.get_contextvars()
