# supportdesk/ticket/models.py
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from supportdesk.auth.models import new_id
from supportdesk.core.database import Base, utcnow
from supportdesk.core.enums import Role, TicketStatus


class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id = Column(String(32), primary_key=True, default=new_id)
    creator_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(150), nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    attachment_url = Column(String(2048), nullable=True)
    status = Column(Enum(TicketStatus, name="ticket_status"), default=TicketStatus.OPEN, index=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    creator = relationship("User")


class Message(Base):
    __tablename__ = "support_messages"
    __table_args__ = (
        UniqueConstraint("ticket_id", "sender_id", "idempotency_key", name="uq_support_messages_idempotency"),
    )

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(String(32), ForeignKey("support_tickets.id"), index=True, nullable=False)
    sender_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    sender_role = Column(Enum(Role, name="user_role"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    idempotency_key = Column(String(128), nullable=True)

    sender = relationship("User")
