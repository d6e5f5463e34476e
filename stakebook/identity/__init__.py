"""Identity module."""

from stakebook.identity.provider import (
    IdentityProvider,
    StaticIdentityProvider,
    UserIdentity,
)

__all__ = [
    "IdentityProvider",
    "StaticIdentityProvider",
    "UserIdentity",
]
