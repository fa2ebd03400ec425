"""
Engine and session factory for the shared credential cache.
Any SQLAlchemy URL reachable by all replicas works; SQLite is fine for a single host.
"""
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from libwx.models import Base


def make_engine(url: str) -> Engine:
    # SQLite: in-memory needs StaticPool so all connections share the same DB (for tests)
    # check_same_thread=False because store calls run in worker threads
    if url.startswith("sqlite:///:memory:") or url == "sqlite://":
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create the credential_cache table if missing."""
    Base.metadata.create_all(bind=engine)


def make_session_factory(url: str) -> sessionmaker:
    engine = make_engine(url)
    init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
