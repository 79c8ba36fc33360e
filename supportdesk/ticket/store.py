"""
TicketStore: persistence for tickets and their messages.

Writes that touch a ticket row are compare-and-swap on ``updated_at``: the
UPDATE only matches when the row still carries the timestamp the caller
loaded. A miss rolls back and raises ``StaleTicket``. Every accepted write
moves ``updated_at`` strictly forward, and an appended message takes that
same timestamp, so a ticket's thread is strictly ordered by ``created_at``.
"""

from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from supportdesk.auth.sessions import Identity
from supportdesk.core.database import utcnow
from supportdesk.core.enums import TicketStatus
from supportdesk.core.errors import StaleTicket, StorageError
from supportdesk.core.logging import get_logger
from supportdesk.ticket.models import Message, SupportTicket

logger = get_logger(__name__)


def next_timestamp(previous: datetime) -> datetime:
    now = utcnow()
    if now > previous:
        return now
    return previous + timedelta(microseconds=1)


class TicketStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_ticket_by_id(self, ticket_id: str) -> SupportTicket | None:
        return self._read(
            lambda: self.db.query(SupportTicket)
            .filter(SupportTicket.id == ticket_id)
            .populate_existing()
            .first()
        )

    def find_ticket_by_id_for_creator(self, ticket_id: str, creator_id: str) -> SupportTicket | None:
        return self._read(
            lambda: self.db.query(SupportTicket)
            .filter(SupportTicket.id == ticket_id, SupportTicket.creator_id == creator_id)
            .populate_existing()
            .first()
        )

    def list_messages(self, ticket_id: str) -> list[Message]:
        return self._read(
            lambda: self.db.query(Message)
            .filter(Message.ticket_id == ticket_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    def last_message(self, ticket_id: str) -> Message | None:
        return self._read(
            lambda: self.db.query(Message)
            .filter(Message.ticket_id == ticket_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )

    def find_message_by_idempotency_key(self, ticket_id: str, sender_id: str, key: str) -> Message | None:
        return self._read(
            lambda: self.db.query(Message)
            .filter(
                Message.ticket_id == ticket_id,
                Message.sender_id == sender_id,
                Message.idempotency_key == key,
            )
            .first()
        )

    def list_ticket_summaries(
        self,
        *,
        creator_id: str | None = None,
        status: TicketStatus | None = None,
    ) -> list:
        """
        Tickets newest first, each with message count, last reply time and
        the role of whoever replied last.
        """
        counts = (
            self.db.query(
                Message.ticket_id.label("ticket_id"),
                func.count(Message.id).label("message_count"),
                func.max(Message.created_at).label("last_message_at"),
            )
            .group_by(Message.ticket_id)
            .subquery()
        )
        last_role = (
            self.db.query(Message.sender_role)
            .filter(Message.ticket_id == SupportTicket.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
            .correlate(SupportTicket)
            .scalar_subquery()
        )
        query = (
            self.db.query(
                SupportTicket,
                func.coalesce(counts.c.message_count, 0).label("message_count"),
                counts.c.last_message_at,
                last_role.label("last_sender_role"),
            )
            .outerjoin(counts, counts.c.ticket_id == SupportTicket.id)
            .order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())
        )
        if creator_id is not None:
            query = query.filter(SupportTicket.creator_id == creator_id)
        if status is not None:
            query = query.filter(SupportTicket.status == status)
        return self._read(query.all)

    def create_ticket(
        self,
        creator: Identity,
        *,
        title: str,
        name: str,
        email: str,
        message: str,
        attachment_url: str | None = None,
    ) -> SupportTicket:
        stamp = utcnow()
        ticket = SupportTicket(
            creator_id=creator.id,
            title=title,
            name=name,
            email=email,
            message=message,
            attachment_url=attachment_url,
            status=TicketStatus.OPEN,
            created_at=stamp,
            updated_at=stamp,
        )
        try:
            self.db.add(ticket)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("create_ticket", exc, creator_id=creator.id)
        try:
            self.db.refresh(ticket)
        except SQLAlchemyError as exc:
            self._fail("create_ticket", exc, creator_id=creator.id, committed=True)
        return ticket

    def append_message_and_update_ticket(
        self,
        ticket_id: str,
        *,
        expected_updated_at: datetime,
        sender: Identity,
        content: str,
        status_update: TicketStatus | None = None,
        idempotency_key: str | None = None,
    ) -> Message:
        """
        Insert a message and bump the ticket in one transaction.

        Raises ``StaleTicket`` when the ticket no longer carries
        ``expected_updated_at``, or when a concurrent submission with the
        same idempotency key won the race. Nothing is written in that case.
        The returned message is built from the committed values, so a
        successful commit is never followed by another round trip.
        """
        expected = expected_updated_at
        stamp = next_timestamp(expected)
        values = {"updated_at": stamp}
        if status_update is not None:
            values["status"] = status_update

        try:
            matched = (
                self.db.query(SupportTicket)
                .filter(SupportTicket.id == ticket_id, SupportTicket.updated_at == expected)
                .update(values, synchronize_session=False)
            )
            if matched != 1:
                self.db.rollback()
                raise StaleTicket(ticket_id)
            message = Message(
                ticket_id=ticket_id,
                sender_id=sender.id,
                sender_role=sender.role,
                content=content,
                created_at=stamp,
                idempotency_key=idempotency_key,
            )
            self.db.add(message)
            self.db.flush()
            message_id = message.id
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if idempotency_key is not None:
                logger.info("reply_idempotency_race", ticket_id=ticket_id, sender_id=sender.id)
                raise StaleTicket(ticket_id) from exc
            self._fail("append_message", exc, ticket_id=ticket_id)
        except SQLAlchemyError as exc:
            self._fail("append_message", exc, ticket_id=ticket_id)

        return Message(
            id=message_id,
            ticket_id=ticket_id,
            sender_id=sender.id,
            sender_role=sender.role,
            content=content,
            created_at=stamp,
            idempotency_key=idempotency_key,
        )

    def update_ticket_status(
        self,
        ticket_id: str,
        status: TicketStatus,
        *,
        expected_updated_at: datetime,
    ) -> datetime:
        """CAS the ticket's status; returns the new ``updated_at``."""
        expected = expected_updated_at
        stamp = next_timestamp(expected)
        try:
            matched = (
                self.db.query(SupportTicket)
                .filter(SupportTicket.id == ticket_id, SupportTicket.updated_at == expected)
                .update({"status": status, "updated_at": stamp}, synchronize_session=False)
            )
            if matched != 1:
                self.db.rollback()
                raise StaleTicket(ticket_id)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("update_ticket_status", exc, ticket_id=ticket_id)
        return stamp

    def _read(self, fn):
        try:
            return fn()
        except SQLAlchemyError as exc:
            self._fail("read", exc)

    def _fail(self, operation: str, exc: SQLAlchemyError, **context) -> None:
        self.db.rollback()
        logger.exception("ticket_store_error", operation=operation, **context)
        raise StorageError() from exc
