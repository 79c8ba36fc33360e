"""Append-only message thread of a ticket."""

from __future__ import annotations

from datetime import datetime

from supportdesk.auth.sessions import Identity
from supportdesk.core.config import get_settings
from supportdesk.core.enums import TicketStatus
from supportdesk.core.errors import ValidationError
from supportdesk.ticket.models import Message
from supportdesk.ticket.store import TicketStore


class MessageThread:
    def __init__(self, store: TicketStore, *, max_length: int | None = None) -> None:
        self.store = store
        self.max_length = max_length if max_length is not None else get_settings().MAX_REPLY_LENGTH

    def validate_content(self, content: str | None) -> str:
        if content is None or not content.strip():
            raise ValidationError("Reply message cannot be empty.", field="content")
        if len(content) > self.max_length:
            raise ValidationError(
                f"Reply is too long (maximum {self.max_length} characters).",
                field="content",
            )
        return content

    def append(
        self,
        ticket_id: str,
        sender: Identity,
        content: str,
        *,
        expected_updated_at: datetime,
        status_update: TicketStatus | None = None,
        idempotency_key: str | None = None,
    ) -> Message:
        content = self.validate_content(content)
        return self.store.append_message_and_update_ticket(
            ticket_id,
            expected_updated_at=expected_updated_at,
            sender=sender,
            content=content,
            status_update=status_update,
            idempotency_key=idempotency_key,
        )

    def list_ordered(self, ticket_id: str) -> list[Message]:
        return self.store.list_messages(ticket_id)

    def last_message(self, ticket_id: str) -> Message | None:
        return self.store.last_message(ticket_id)
