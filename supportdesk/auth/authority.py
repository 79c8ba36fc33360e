"""
RoleAuthority: the one place that knows what a role may do.

Every surface of the application (storefront, customer portal, editor,
admin, super-admin, manager) asks this module for a capability instead of
keeping its own copy of the role list.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from supportdesk.auth.sessions import Identity, SessionValidator
from supportdesk.core.enums import STAFF_ROLES, Role, Surface, TicketStatus
from supportdesk.core.errors import Forbidden, Unauthenticated
from supportdesk.core.logging import log_audit_event


class AccessKind(str, Enum):
    CREATOR = "CREATOR"
    STAFF = "STAFF"


class OwnedTicket(Protocol):
    id: str
    creator_id: str


# Status edges staff may drive. Nothing leaves CLOSED.
STAFF_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED}),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.IN_PROGRESS}),
    TicketStatus.CLOSED: frozenset(),
}

SURFACE_ROLES: dict[Surface, frozenset[Role]] = {
    Surface.STOREFRONT: frozenset(Role),
    Surface.CUSTOMER: frozenset({Role.CUSTOMER, Role.PROCUSTOMER}),
    Surface.EDITOR: frozenset({Role.EDITOR}),
    Surface.ADMIN: STAFF_ROLES,
    Surface.SUPER_ADMIN: frozenset({Role.SUPERADMIN}),
    Surface.MANAGER: frozenset({Role.MANAGER}),
}


class RoleAuthority:
    def __init__(self, validator: SessionValidator) -> None:
        self.validator = validator

    def resolve(self, token: str | None) -> Identity:
        """Turn a session token into an identity or raise ``Unauthenticated``."""
        session = self.validator.validate(token)
        if session is None:
            raise Unauthenticated()
        return session.identity

    @staticmethod
    def is_staff(identity: Identity) -> bool:
        return identity.role in STAFF_ROLES

    def authorize_ticket_access(self, identity: Identity, ticket: OwnedTicket) -> AccessKind:
        if self.is_staff(identity):
            return AccessKind.STAFF
        if ticket.creator_id == identity.id:
            return AccessKind.CREATOR
        log_audit_event(
            "ticket.access_denied",
            actor_id=identity.id,
            role=identity.role.value,
            ticket_id=ticket.id,
        )
        raise Forbidden()

    def can_transition(self, identity: Identity, current: TicketStatus, target: TicketStatus) -> bool:
        if not self.is_staff(identity):
            return False
        return target in STAFF_TRANSITIONS.get(current, frozenset())

    @staticmethod
    def can_access_surface(identity: Identity | None, surface: Surface) -> bool:
        if surface is Surface.STOREFRONT:
            return True
        if identity is None:
            return False
        return identity.role in SURFACE_ROLES[surface]

    def surfaces_for(self, identity: Identity | None) -> list[Surface]:
        return [s for s in Surface if self.can_access_surface(identity, s)]


__all__ = ["AccessKind", "RoleAuthority", "STAFF_TRANSITIONS", "SURFACE_ROLES"]
