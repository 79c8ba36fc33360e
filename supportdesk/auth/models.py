# supportdesk/auth/models.py
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import relationship

from supportdesk.core.database import Base, utcnow
from supportdesk.core.enums import Role


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.USER)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(String(32), primary_key=True, default=new_id)
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    # Role is captured at login; a role change needs a new session.
    role = Column(Enum(Role, name="user_role"), nullable=False)
    issued_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="sessions")
