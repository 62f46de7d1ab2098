"""Marketplace participants and how they relate to an order."""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID


class UserRole(str, Enum):
    """Marketplace role resolved by the identity service."""

    FARMER = "farmer"
    VENDOR = "vendor"

    @classmethod
    def from_string(cls, value: str) -> "UserRole":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid user role: {value}")


class Party(str, Enum):
    """Side of an order a participant acts for."""

    VENDOR = "vendor"
    FARMER = "farmer"

    @property
    def counterpart(self) -> "Party":
        return Party.FARMER if self is Party.VENDOR else Party.VENDOR


@dataclass(frozen=True)
class Actor:
    """Authenticated caller of a marketplace operation."""

    id: UUID
    role: UserRole

    @property
    def is_farmer(self) -> bool:
        return self.role is UserRole.FARMER

    @property
    def is_vendor(self) -> bool:
        return self.role is UserRole.VENDOR


def resolve_party(actor: Actor, record: Any) -> Party | None:
    """
    Work out which side of an order the actor stands on.

    ``record`` is anything carrying ``vendor_id`` and ``farmer_id`` (an order
    or one of its negotiation entries). Both the id and the role have to
    match: a vendor token whose id happens to equal the farmer id is not the
    farmer.

    Returns:
        The actor's party, or None if the actor is not part of the order
    """
    if actor.is_vendor and record.vendor_id == actor.id:
        return Party.VENDOR
    if actor.is_farmer and record.farmer_id == actor.id:
        return Party.FARMER
    return None
