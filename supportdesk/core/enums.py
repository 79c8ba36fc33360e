from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Closed set of account roles."""

    USER = "USER"
    CUSTOMER = "CUSTOMER"
    PROCUSTOMER = "PROCUSTOMER"
    EDITOR = "EDITOR"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"
    MANAGER = "MANAGER"


STAFF_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPERADMIN})


class TicketStatus(str, Enum):
    """Support ticket states. CLOSED is terminal."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class Surface(str, Enum):
    """Role-scoped areas of the application."""

    STOREFRONT = "storefront"
    CUSTOMER = "customer"
    EDITOR = "editor"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"
    MANAGER = "manager"
