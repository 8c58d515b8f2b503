from sqlalchemy import Engine
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orgindex.settings import Settings


class Base(DeclarativeBase):
    pass


def get_database_url(settings: Settings | None = None) -> str:
    settings = settings or Settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not set")
    return settings.database_url


def build_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across sessions."""

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Importing models registers the tables on Base.metadata.
    from orgindex import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
