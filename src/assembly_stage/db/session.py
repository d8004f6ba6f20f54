"""Record store engine and sessions.

Assemblies, roster units and vote records are kept in SQL. Presence and the
live session flags are not; they live in the presence store.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from assembly_stage.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for assemblies, roster units and votes."""


# Model modules register their tables on Base.metadata.
import assembly_stage.models  # noqa: E402,F401


def build_engine(url: str, *, echo: bool = False, **options: Any) -> Engine:
    """Create an engine for the record store at ``url``.

    SQLite connections are opened with ``check_same_thread=False`` because
    FastAPI runs sync endpoints in a threadpool.
    """
    if make_url(url).get_backend_name() == "sqlite":
        options.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, echo=echo, **options)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a record store session for one request, rolled back on error."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    """Create the assembly, roster and vote tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop every record store table."""
    Base.metadata.drop_all(bind=bind or engine)
