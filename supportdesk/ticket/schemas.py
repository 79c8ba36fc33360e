# supportdesk/ticket/schemas.py
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from supportdesk.core.enums import Role, TicketStatus


class TicketBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=150)
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    message: str = Field(..., min_length=10, max_length=5000)


class TicketCreate(TicketBase):
    attachment_url: str | None = Field(default=None, max_length=2048)


class TicketOut(TicketBase):
    id: str
    creator_id: str
    attachment_url: str | None = None
    status: TicketStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketSummaryOut(BaseModel):
    id: str
    title: str
    creator_id: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    message_count: int
    last_message_at: datetime | None = None
    last_sender_role: Role | None = None
    awaiting_staff: bool


class MessageOut(BaseModel):
    id: int
    ticket_id: str
    sender_id: str
    sender_role: Role
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class InitialMessageOut(BaseModel):
    sender_id: str
    content: str
    created_at: datetime


class TicketDetailOut(BaseModel):
    ticket: TicketOut
    initial_message: InitialMessageOut
    messages: list[MessageOut]
    allowed_statuses: list[TicketStatus]


class ReplyCreate(BaseModel):
    # Length bounds are enforced by MessageThread so they follow configuration.
    content: str


class ReplyOut(BaseModel):
    ticket_id: str
    message: MessageOut
    status: TicketStatus
    previous_status: TicketStatus
    updated_at: datetime
    replayed: bool = False


class StatusUpdate(BaseModel):
    status: TicketStatus


class StatusOut(BaseModel):
    ticket_id: str
    status: TicketStatus
    previous_status: TicketStatus
    updated_at: datetime
