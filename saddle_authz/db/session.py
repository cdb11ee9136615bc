from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from saddle_authz.db import filters as _filters  # noqa: F401  (register authorization listeners)
from saddle_authz.security.context import attach_context
from saddle_authz.settings import get_settings


def build_engine(db_url: str) -> Engine:
    return create_engine(
        db_url,
        connect_args={"check_same_thread": False} if db_url.startswith("sqlite") else {},
    )


def make_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, class_=Session)


_settings = get_settings()

engine = build_engine(_settings.resolved_db_url())

SessionLocal = make_session_factory(engine)


def get_session_factory(request: Request) -> sessionmaker[Session]:
    return getattr(request.app.state, "session_factory", SessionLocal)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency.

    - One Session per request; identity is attached to the Session, never to the pooled connection.
    - Existing code that does `db.scalars(select(Model))` is scoped by the listeners in
      `saddle_authz/db/filters.py`, which read `Session.info["authz"]`.
    - A request that never established a context gets a fail-closed session.
    """

    db = get_session_factory(request)()
    try:
        authz = getattr(getattr(request, "state", None), "authz", None)
        if authz is not None:
            attach_context(db, authz)
        yield db
    finally:
        db.close()
