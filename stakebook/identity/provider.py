"""
Identity lookup.

Session handling lives in the outer web layer; the market only needs to
ask who the current user is.
"""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class UserIdentity:
    """The authenticated caller."""

    user_id: str


class IdentityProvider(Protocol):
    """Anything that can answer 'who is calling?'."""

    async def current_user(self) -> Optional[UserIdentity]:
        ...


class StaticIdentityProvider:
    """Identity provider pinned to one user (or to nobody)."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self._identity = UserIdentity(user_id) if user_id else None

    async def current_user(self) -> Optional[UserIdentity]:
        return self._identity
