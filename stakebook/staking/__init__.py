"""Stake placement module."""

from stakebook.staking.orchestrator import (
    StakeResult,
    StakeTransaction,
    is_storage_conflict,
)

__all__ = [
    "StakeResult",
    "StakeTransaction",
    "is_storage_conflict",
]
