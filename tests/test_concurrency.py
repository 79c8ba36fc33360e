# tests/test_concurrency.py
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from supportdesk.auth.authority import RoleAuthority
from supportdesk.auth.models import User
from supportdesk.auth.sessions import Identity, SessionValidator, issue_session
from supportdesk.core.database import init_db
from supportdesk.core.enums import Role, TicketStatus
from supportdesk.ticket.gateway import ReplyGateway
from supportdesk.ticket.store import TicketStore

REPLIES_PER_WRITER = 5


@pytest.fixture()
def file_sessions(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_concurrent_replies_are_neither_lost_nor_reordered(file_sessions, notifier):
    setup = file_sessions()
    customer = User(email="c@example.com", role=Role.CUSTOMER)
    staff = User(email="s@example.com", role=Role.ADMIN)
    setup.add_all([customer, staff])
    setup.commit()
    ticket = TicketStore(setup).create_ticket(
        Identity(customer.id, customer.role),
        title="Broken zipper",
        name="Jane Doe",
        email="jane@example.com",
        message="The zipper on my jacket broke on day one.",
    )
    writers = {
        "customer": issue_session(setup, customer),
        "staff": issue_session(setup, staff),
    }
    ticket_id = ticket.id
    setup.close()

    errors = []
    start = threading.Barrier(len(writers))

    def write(name, token):
        db = file_sessions()
        try:
            gateway = ReplyGateway(
                RoleAuthority(SessionValidator(db)),
                TicketStore(db),
                notifier,
                conflict_retries=100,
            )
            start.wait()
            for i in range(REPLIES_PER_WRITER):
                gateway.submit_reply(token, ticket_id, f"{name}-{i}")
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=write, args=item) for item in writers.items()]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []

    check = file_sessions()
    try:
        messages = TicketStore(check).list_messages(ticket_id)
        contents = [m.content for m in messages]
        assert len(contents) == 2 * REPLIES_PER_WRITER
        assert len(set(contents)) == len(contents)
        # Each writer's own replies stay in submission order.
        for name in writers:
            mine = [c for c in contents if c.startswith(name)]
            assert mine == [f"{name}-{i}" for i in range(REPLIES_PER_WRITER)]
        created = [m.created_at for m in messages]
        assert created == sorted(created)
        assert len(set(created)) == len(created)

        fresh = TicketStore(check).find_ticket_by_id(ticket_id)
        assert fresh.updated_at == created[-1]
        assert fresh.status == TicketStatus.IN_PROGRESS
    finally:
        check.close()
