"""
Role tiers and the actor passed into every workflow operation.

The enclosing application resolves who is calling (see atelier.api.deps);
services only ever see an explicit Actor.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet

from atelier.exceptions import ForbiddenError, UnauthorizedError


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    CUSTOMER = "CUSTOMER"


# Staff tier may mutate orders and tasks; admin tier may also delete tasks
STAFF_ROLES: FrozenSet[str] = frozenset({UserRole.STAFF.value, UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value})
ADMIN_ROLES: FrozenSet[str] = frozenset({UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value})


@dataclass(frozen=True)
class Actor:
    """The user performing an operation."""
    user_id: int
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def require_authenticated(actor) -> Actor:
    if actor is None or not isinstance(actor, Actor):
        raise UnauthorizedError("Authentication required")
    return actor


def require_staff(actor) -> Actor:
    """Reject anyone below the staff tier."""
    actor = require_authenticated(actor)
    if not actor.is_staff:
        raise UnauthorizedError(
            "Staff access required",
            details={"role": actor.role},
        )
    return actor


def require_admin(actor) -> Actor:
    """
    Admin tier check for destructive actions.

    Non-staff callers get UnauthorizedError; staff below admin get ForbiddenError.
    """
    actor = require_staff(actor)
    if not actor.is_admin:
        raise ForbiddenError(
            "Admin access required",
            details={"role": actor.role},
        )
    return actor
