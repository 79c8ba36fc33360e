# supportdesk/auth/sessions.py
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supportdesk.auth.models import AuthSession, User
from supportdesk.core.config import get_settings
from supportdesk.core.database import utcnow
from supportdesk.core.enums import Role
from supportdesk.core.errors import StorageError
from supportdesk.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    role: Role


@dataclass(frozen=True)
class ValidatedSession:
    identity: Identity
    issued_at: datetime
    expires_at: datetime


def hash_token(token: str) -> str:
    """Only the sha256 digest of a token is ever stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _storage_failure(db: Session, operation: str, exc: SQLAlchemyError) -> StorageError:
    db.rollback()
    logger.exception("session_store_error", operation=operation)
    return StorageError()


def _find_session(db: Session, token: str) -> AuthSession | None:
    return db.query(AuthSession).filter(AuthSession.token_hash == hash_token(token)).first()


class SessionValidator:
    def __init__(self, db: Session) -> None:
        self.db = db

    def validate(self, token: str | None, *, now: datetime | None = None) -> ValidatedSession | None:
        if not token:
            return None
        try:
            row = _find_session(self.db, token)
        except SQLAlchemyError as exc:
            raise _storage_failure(self.db, "validate", exc) from exc
        if row is None:
            return None
        if (now or utcnow()) >= row.expires_at:
            logger.info("session_expired", session_id=row.id, user_id=row.user_id)
            return None
        return ValidatedSession(
            identity=Identity(id=row.user_id, role=Role(row.role)),
            issued_at=row.issued_at,
            expires_at=row.expires_at,
        )


def issue_session(db: Session, user: User, *, ttl: timedelta | None = None) -> str:
    """Create a session for ``user`` and return the raw token."""
    if ttl is None:
        ttl = timedelta(minutes=get_settings().SESSION_TTL_MINUTES)
    token = secrets.token_urlsafe(32)
    issued = utcnow()
    try:
        db.add(
            AuthSession(
                token_hash=hash_token(token),
                user_id=user.id,
                role=user.role,
                issued_at=issued,
                expires_at=issued + ttl,
            )
        )
        db.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(db, "issue", exc) from exc
    logger.info("session_issued", user_id=user.id, role=Role(user.role).value)
    return token


def revoke_session(db: Session, token: str) -> bool:
    try:
        row = _find_session(db, token)
        if row is None:
            return False
        db.delete(row)
        db.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(db, "revoke", exc) from exc
    return True
