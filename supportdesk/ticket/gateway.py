"""
ReplyGateway: the only entry point that mutates a ticket.

A reply runs, in order:

1. resolve the session token to an identity,
2. load the ticket (creator-scoped for non-staff callers),
3. authorize access,
4. validate the content,
5. work out the status the reply implies,
6. append the message and bump the ticket in one transaction,
7. tell the change notifier which views went stale.

Steps 1-5 have no side effects. Step 6 is a compare-and-swap on the
ticket's ``updated_at``; when another writer got there first nothing is
written, and steps 2-6 run again against the fresh row. Retrying after an
ambiguous storage failure is left to the caller, guarded by an
idempotency key.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from supportdesk.auth.authority import RoleAuthority
from supportdesk.core.config import get_settings
from supportdesk.core.enums import TicketStatus
from supportdesk.core.errors import StaleTicket, StorageError
from supportdesk.core.logging import get_logger, log_audit_event
from supportdesk.ticket.lifecycle import TicketLifecycle
from supportdesk.ticket.models import Message
from supportdesk.ticket.notifier import ChangeNotifier, ticket_view_keys
from supportdesk.ticket.services import find_accessible_ticket
from supportdesk.ticket.store import TicketStore
from supportdesk.ticket.thread import MessageThread

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReplyAccepted:
    ticket_id: str
    message: Message
    status: TicketStatus
    previous_status: TicketStatus
    updated_at: datetime
    replayed: bool = False


@dataclass(frozen=True)
class StatusChanged:
    ticket_id: str
    status: TicketStatus
    previous_status: TicketStatus
    updated_at: datetime


class ReplyGateway:
    def __init__(
        self,
        authority: RoleAuthority,
        store: TicketStore,
        notifier: ChangeNotifier,
        *,
        lifecycle: TicketLifecycle | None = None,
        thread: MessageThread | None = None,
        conflict_retries: int | None = None,
    ) -> None:
        self.authority = authority
        self.store = store
        self.notifier = notifier
        self.lifecycle = lifecycle or TicketLifecycle(authority)
        self.thread = thread or MessageThread(store)
        if conflict_retries is None:
            conflict_retries = get_settings().REPLY_CONFLICT_RETRIES
        self.conflict_retries = conflict_retries

    def submit_reply(
        self,
        token: str | None,
        ticket_id: str,
        content: str,
        *,
        idempotency_key: str | None = None,
    ) -> ReplyAccepted:
        identity = self.authority.resolve(token)

        for attempt in range(1, self.conflict_retries + 2):
            ticket, access = find_accessible_ticket(self.authority, self.store, identity, ticket_id)
            # Snapshot now; the ORM object may be refreshed before the write.
            current = TicketStatus(ticket.status)
            loaded_at = ticket.updated_at
            content = self.thread.validate_content(content)

            if idempotency_key:
                existing = self.store.find_message_by_idempotency_key(ticket_id, identity.id, idempotency_key)
                if existing is not None:
                    logger.info("reply_replayed", ticket_id=ticket_id, message_id=existing.id)
                    return ReplyAccepted(
                        ticket_id=ticket_id,
                        message=existing,
                        status=current,
                        previous_status=current,
                        updated_at=loaded_at,
                        replayed=True,
                    )

            transition = self.lifecycle.reply_transition(access, current)
            try:
                message = self.thread.append(
                    ticket_id,
                    identity,
                    content,
                    expected_updated_at=loaded_at,
                    status_update=transition.status if transition.changed else None,
                    idempotency_key=idempotency_key,
                )
            except StaleTicket:
                logger.info("reply_conflict", ticket_id=ticket_id, attempt=attempt)
                continue

            log_audit_event(
                "ticket.reply_added",
                actor_id=identity.id,
                role=identity.role.value,
                ticket_id=ticket_id,
                message_id=message.id,
                access=access.value,
                status_from=transition.previous.value,
                status_to=transition.status.value,
            )
            self._notify(ticket_id)
            return ReplyAccepted(
                ticket_id=ticket_id,
                message=message,
                status=transition.status,
                previous_status=transition.previous,
                updated_at=message.created_at,
            )

        logger.warning("reply_conflict_retries_exhausted", ticket_id=ticket_id, attempts=self.conflict_retries + 1)
        raise StorageError()

    def change_status(self, token: str | None, ticket_id: str, target: TicketStatus) -> StatusChanged:
        identity = self.authority.resolve(token)

        for attempt in range(1, self.conflict_retries + 2):
            ticket, _ = find_accessible_ticket(self.authority, self.store, identity, ticket_id)
            previous = TicketStatus(ticket.status)
            loaded_at = ticket.updated_at
            status = self.lifecycle.explicit_transition(identity, previous, target)
            try:
                updated_at = self.store.update_ticket_status(ticket_id, status, expected_updated_at=loaded_at)
            except StaleTicket:
                logger.info("status_conflict", ticket_id=ticket_id, attempt=attempt)
                continue

            log_audit_event(
                "ticket.status_changed",
                actor_id=identity.id,
                role=identity.role.value,
                ticket_id=ticket_id,
                status_from=previous.value,
                status_to=status.value,
            )
            self._notify(ticket_id)
            return StatusChanged(
                ticket_id=ticket_id,
                status=status,
                previous_status=previous,
                updated_at=updated_at,
            )

        logger.warning("status_conflict_retries_exhausted", ticket_id=ticket_id, attempts=self.conflict_retries + 1)
        raise StorageError()

    def _notify(self, ticket_id: str) -> None:
        try:
            self.notifier.invalidate(ticket_view_keys(ticket_id))
        except Exception:
            logger.exception("change_notifier_failed", ticket_id=ticket_id)
