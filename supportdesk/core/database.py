# supportdesk/core/database.py
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from supportdesk.core.config import get_settings

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so every column stays naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_engine(url: str):
    # SQLite connections are shared with the threadpool FastAPI runs sync routes on.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = build_engine(get_settings().DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create the user, session, ticket and message tables."""
    from supportdesk.auth import models as auth_models  # noqa: F401
    from supportdesk.ticket import models as ticket_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
