"""
Actor value object and the resolver interface used to obtain it.

The identity layer resolves who is calling (and with what role); the
metering core only ever sees an Actor.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

from jobgate.core.roles import billing_owner_id


@dataclass(frozen=True)
class Actor:
    """Authenticated principal performing a gated action."""
    id: int
    role: str
    verification_status: Optional[str] = None
    has_verified_document: bool = False
    parent_user_id: Optional[int] = None

    @property
    def billing_owner_id(self) -> int:
        return billing_owner_id(self.id, self.role, self.parent_user_id)


class ActorResolver(Protocol):
    """Looks up the facts about a user needed for policy decisions."""

    def find_user(self, user_id: int) -> Optional[Actor]:
        ...
