"""
Domain: application users.

Users are created by the external identity provider; this service only reads
them (and lets an admin delete one). `display_name` is the name used in
assignments, activity entries and lifecycle events.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


@dataclass(frozen=True, slots=True)
class User:
    uid: str
    email: str
    role: UserRole
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def performer_name(self) -> str:
        """Name recorded as the actor of events and activities."""

        return self.display_name or self.email or "User"


__all__ = ["User", "UserRole"]
