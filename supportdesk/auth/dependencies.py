# supportdesk/auth/dependencies.py
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from supportdesk.auth.authority import RoleAuthority
from supportdesk.auth.sessions import Identity, SessionValidator
from supportdesk.core.database import get_db

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    # Missing tokens are passed through; RoleAuthority decides.
    return credentials.credentials if credentials else None


def get_authority(db: Session = Depends(get_db)) -> RoleAuthority:
    return RoleAuthority(SessionValidator(db))


def get_current_identity(
    token: str | None = Depends(get_session_token),
    authority: RoleAuthority = Depends(get_authority),
) -> Identity:
    return authority.resolve(token)


def get_optional_identity(
    token: str | None = Depends(get_session_token),
    authority: RoleAuthority = Depends(get_authority),
) -> Identity | None:
    session = authority.validator.validate(token)
    return session.identity if session else None
