from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def build_engine(db_url: str) -> Engine:
    return create_engine(
        db_url,
        connect_args={"check_same_thread": False} if db_url.startswith("sqlite") else {},
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency.

    The session factory is owned by the app (built during startup). Row-level
    scoping is attached to ``Session.info`` by the authentication dependency
    once the caller is known, so existing ``select(WorkOrder)`` code is scoped
    transparently by ``workorder_access.db.filters``.
    """

    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        raise RuntimeError("Session factory not configured. Did app startup run?")

    db = factory()
    try:
        yield db
    finally:
        db.close()
