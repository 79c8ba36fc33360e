# supportdesk/ticket/services.py
from sqlalchemy.orm import Session

from supportdesk.auth.authority import AccessKind, RoleAuthority
from supportdesk.auth.sessions import Identity
from supportdesk.core.enums import STAFF_ROLES, TicketStatus
from supportdesk.core.errors import NotFound
from supportdesk.core.logging import get_logger, log_audit_event
from supportdesk.ticket.lifecycle import TicketLifecycle
from supportdesk.ticket.models import SupportTicket
from supportdesk.ticket.schemas import (
    InitialMessageOut,
    MessageOut,
    TicketCreate,
    TicketDetailOut,
    TicketOut,
    TicketSummaryOut,
)
from supportdesk.ticket.store import TicketStore
from supportdesk.ticket.thread import MessageThread

logger = get_logger(__name__)


def find_accessible_ticket(
    authority: RoleAuthority,
    store: TicketStore,
    identity: Identity,
    ticket_id: str,
) -> tuple[SupportTicket, AccessKind]:
    """
    Load a ticket the identity may act on.

    Non-staff lookups are scoped to the creator, so "does not exist" and
    "not yours" both end in the same NotFound.
    """
    if authority.is_staff(identity):
        ticket = store.find_ticket_by_id(ticket_id)
    else:
        ticket = store.find_ticket_by_id_for_creator(ticket_id, identity.id)
    if ticket is None:
        logger.warning("ticket_lookup_miss", ticket_id=ticket_id, actor_id=identity.id)
        raise NotFound()
    return ticket, authority.authorize_ticket_access(identity, ticket)


def create_ticket(db: Session, identity: Identity, payload: TicketCreate) -> SupportTicket:
    ticket = TicketStore(db).create_ticket(identity, **payload.model_dump())
    log_audit_event(
        "ticket.created",
        actor_id=identity.id,
        role=identity.role.value,
        ticket_id=ticket.id,
    )
    return ticket


def list_tickets(
    db: Session,
    authority: RoleAuthority,
    identity: Identity,
    status: TicketStatus | None = None,
) -> list[TicketSummaryOut]:
    creator_id = None if authority.is_staff(identity) else identity.id
    rows = TicketStore(db).list_ticket_summaries(creator_id=creator_id, status=status)
    items = []
    for ticket, message_count, last_message_at, last_sender_role in rows:
        items.append(
            TicketSummaryOut(
                id=ticket.id,
                title=ticket.title,
                creator_id=ticket.creator_id,
                status=ticket.status,
                created_at=ticket.created_at,
                updated_at=ticket.updated_at,
                message_count=message_count,
                last_message_at=last_message_at,
                last_sender_role=last_sender_role,
                # Nobody from staff has answered the latest word yet.
                awaiting_staff=(
                    ticket.status not in (TicketStatus.RESOLVED, TicketStatus.CLOSED)
                    and last_sender_role not in STAFF_ROLES
                ),
            )
        )
    return items


def get_ticket_detail(
    db: Session,
    authority: RoleAuthority,
    identity: Identity,
    ticket_id: str,
) -> TicketDetailOut:
    store = TicketStore(db)
    ticket, _ = find_accessible_ticket(authority, store, identity, ticket_id)
    thread = MessageThread(store)
    return TicketDetailOut(
        ticket=TicketOut.model_validate(ticket),
        initial_message=InitialMessageOut(
            sender_id=ticket.creator_id,
            content=ticket.message,
            created_at=ticket.created_at,
        ),
        messages=[MessageOut.model_validate(m) for m in thread.list_ordered(ticket.id)],
        allowed_statuses=TicketLifecycle(authority).allowed_targets(identity, ticket.status),
    )
