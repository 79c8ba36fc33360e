# supportdesk/ticket/routes.py
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from supportdesk.auth.authority import RoleAuthority
from supportdesk.auth.dependencies import get_authority, get_current_identity, get_session_token
from supportdesk.auth.sessions import Identity
from supportdesk.core.database import get_db
from supportdesk.core.enums import TicketStatus
from supportdesk.ticket import services as ticket_service
from supportdesk.ticket.gateway import ReplyGateway
from supportdesk.ticket.notifier import ChangeNotifier, get_notifier
from supportdesk.ticket.schemas import (
    MessageOut,
    ReplyCreate,
    ReplyOut,
    StatusOut,
    StatusUpdate,
    TicketCreate,
    TicketDetailOut,
    TicketOut,
    TicketSummaryOut,
)
from supportdesk.ticket.store import TicketStore

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def get_gateway(
    db: Session = Depends(get_db),
    authority: RoleAuthority = Depends(get_authority),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> ReplyGateway:
    return ReplyGateway(authority, TicketStore(db), notifier)


@router.post("/", response_model=TicketOut, status_code=201)
def create(
    ticket: TicketCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return ticket_service.create_ticket(db, identity, ticket)


@router.get("/", response_model=list[TicketSummaryOut])
def list_all(
    status: TicketStatus | None = Query(default=None, description="Filter by status"),
    identity: Identity = Depends(get_current_identity),
    authority: RoleAuthority = Depends(get_authority),
    db: Session = Depends(get_db),
):
    return ticket_service.list_tickets(db, authority, identity, status)


@router.get("/{ticket_id}", response_model=TicketDetailOut)
def get(
    ticket_id: str,
    identity: Identity = Depends(get_current_identity),
    authority: RoleAuthority = Depends(get_authority),
    db: Session = Depends(get_db),
):
    return ticket_service.get_ticket_detail(db, authority, identity, ticket_id)


@router.post("/{ticket_id}/replies", response_model=ReplyOut, status_code=201)
def reply(
    ticket_id: str,
    payload: ReplyCreate,
    token: str | None = Depends(get_session_token),
    idempotency_key: str | None = Header(default=None, max_length=128),
    gateway: ReplyGateway = Depends(get_gateway),
):
    accepted = gateway.submit_reply(token, ticket_id, payload.content, idempotency_key=idempotency_key)
    return ReplyOut(
        ticket_id=accepted.ticket_id,
        message=MessageOut.model_validate(accepted.message),
        status=accepted.status,
        previous_status=accepted.previous_status,
        updated_at=accepted.updated_at,
        replayed=accepted.replayed,
    )


@router.put("/{ticket_id}/status", response_model=StatusOut)
def update_status(
    ticket_id: str,
    payload: StatusUpdate,
    token: str | None = Depends(get_session_token),
    gateway: ReplyGateway = Depends(get_gateway),
):
    changed = gateway.change_status(token, ticket_id, payload.status)
    return StatusOut(
        ticket_id=changed.ticket_id,
        status=changed.status,
        previous_status=changed.previous_status,
        updated_at=changed.updated_at,
    )
