"""
Principal model for Work Order Tracker

The tracker never authenticates anyone; it receives an already established
identity from the caller and authorizes against it.
"""

from typing import Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """Authenticated identity acting on work orders."""

    id: str
    is_admin: bool = False
    display_name: Optional[str] = None

    def can_modify(self, owner_id: Optional[str]) -> bool:
        """Owners and administrators may mutate a work order."""
        return self.is_admin or owner_id == self.id
