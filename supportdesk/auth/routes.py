# supportdesk/auth/routes.py
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from supportdesk.auth.authority import RoleAuthority
from supportdesk.auth.dependencies import get_authority, get_optional_identity, get_session_token
from supportdesk.auth.sessions import Identity, revoke_session
from supportdesk.core.database import get_db
from supportdesk.core.enums import Role, Surface
from supportdesk.core.errors import Unauthenticated

router = APIRouter(tags=["Auth"])


class MeOut(BaseModel):
    id: str | None
    role: Role | None
    is_staff: bool
    surfaces: list[Surface]


@router.get("/me", response_model=MeOut)
def me(
    identity: Identity | None = Depends(get_optional_identity),
    authority: RoleAuthority = Depends(get_authority),
):
    return MeOut(
        id=identity.id if identity else None,
        role=identity.role if identity else None,
        is_staff=bool(identity and authority.is_staff(identity)),
        surfaces=authority.surfaces_for(identity),
    )


@router.post("/logout", status_code=204)
def logout(token: str | None = Depends(get_session_token), db: Session = Depends(get_db)):
    if not token or not revoke_session(db, token):
        raise Unauthenticated()
    return Response(status_code=204)
