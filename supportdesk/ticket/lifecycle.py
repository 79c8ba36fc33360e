"""
Ticket status state machine.

    OPEN --staff reply--> IN_PROGRESS --resolve--> RESOLVED --close--> CLOSED
                                ^                      |
                                +------- reopen -------+

Customer replies never move the status. Staff replies move OPEN to
IN_PROGRESS and otherwise only bump the timestamp. RESOLVED and CLOSED
tickets accept no replies; staff must reopen a RESOLVED ticket first, and
CLOSED is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass

from supportdesk.auth.authority import AccessKind, RoleAuthority
from supportdesk.auth.sessions import Identity
from supportdesk.core.enums import TicketStatus
from supportdesk.core.errors import Forbidden, InvalidTransition, TicketClosed

REPLY_BLOCKED: frozenset[TicketStatus] = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})
TERMINAL: frozenset[TicketStatus] = frozenset({TicketStatus.CLOSED})


@dataclass(frozen=True)
class ReplyTransition:
    previous: TicketStatus
    status: TicketStatus

    @property
    def changed(self) -> bool:
        return self.previous != self.status


class TicketLifecycle:
    def __init__(self, authority: RoleAuthority) -> None:
        self.authority = authority

    @staticmethod
    def is_terminal(status: TicketStatus) -> bool:
        return status in TERMINAL

    def reply_transition(self, access: AccessKind, status: TicketStatus) -> ReplyTransition:
        """Status implied by a reply from ``access`` on a ticket in ``status``."""
        status = TicketStatus(status)
        if status in REPLY_BLOCKED:
            raise TicketClosed()
        if access is AccessKind.STAFF and status is TicketStatus.OPEN:
            return ReplyTransition(previous=status, status=TicketStatus.IN_PROGRESS)
        return ReplyTransition(previous=status, status=status)

    def explicit_transition(self, identity: Identity, current: TicketStatus, target: TicketStatus) -> TicketStatus:
        current = TicketStatus(current)
        target = TicketStatus(target)
        if not self.authority.is_staff(identity):
            raise Forbidden()
        if self.is_terminal(current):
            raise TicketClosed("This ticket is closed and can no longer change status.")
        if not self.authority.can_transition(identity, current, target):
            raise InvalidTransition(f"Cannot move a ticket from {current.value} to {target.value}.")
        return target

    def allowed_targets(self, identity: Identity, current: TicketStatus) -> list[TicketStatus]:
        current = TicketStatus(current)
        return [s for s in TicketStatus if self.authority.can_transition(identity, current, s)]
