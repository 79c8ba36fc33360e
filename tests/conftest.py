# tests/conftest.py
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from supportdesk.auth.authority import RoleAuthority
from supportdesk.auth.models import User
from supportdesk.auth.sessions import Identity, SessionValidator, issue_session
from supportdesk.core.database import get_db, init_db
from supportdesk.core.enums import Role, TicketStatus
from supportdesk.main import app
from supportdesk.ticket.gateway import ReplyGateway
from supportdesk.ticket.models import SupportTicket
from supportdesk.ticket.notifier import get_notifier
from supportdesk.ticket.store import TicketStore


class RecordingNotifier:
    def __init__(self):
        self.calls: list[set[str]] = []

    def invalidate(self, paths: set[str]) -> None:
        self.calls.append(set(paths))


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(session_factory, notifier):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role: Role = Role.CUSTOMER) -> User:
        counter["n"] += 1
        user = User(username=f"user{counter['n']}", email=f"user{counter['n']}@example.com", role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def login(db):
    def _login(user: User) -> str:
        return issue_session(db, user)

    return _login


@pytest.fixture()
def make_ticket(db):
    def _make(creator: User, status: TicketStatus = TicketStatus.OPEN) -> SupportTicket:
        ticket = TicketStore(db).create_ticket(
            Identity(id=creator.id, role=creator.role),
            title="Order never arrived",
            name="Jane Doe",
            email="jane@example.com",
            message="My order from last week has not arrived yet.",
        )
        if status is not TicketStatus.OPEN:
            # Seed the status directly; lifecycle rules are exercised elsewhere.
            db.execute(update(SupportTicket).where(SupportTicket.id == ticket.id).values(status=status))
            db.commit()
            db.refresh(ticket)
        return ticket

    return _make


@pytest.fixture()
def gateway(db, notifier):
    return ReplyGateway(RoleAuthority(SessionValidator(db)), TicketStore(db), notifier)


@pytest.fixture()
def customer(make_user):
    return make_user(Role.CUSTOMER)


@pytest.fixture()
def staff(make_user):
    return make_user(Role.ADMIN)
