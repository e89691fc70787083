"""Database bootstrap helpers shared by the dispatcher and its scripts."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from paydispatch.common.config import settings


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory used by SQL-backed collaborators."""

    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False)


# Single SQLAlchemy engine per process.
engine = create_engine(settings.postgres_dsn, pool_pre_ping=True)
SessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass
