"""
Pytest fixtures for the test suite.

Data-layer tests use a fresh in-memory SQLite engine per test. A StaticPool keeps
a single connection, so every session in a test sees the same database, and a
denied flush in one session rolls back only that session's work.

Seeded ids (fresh engine per test):
    credentials: 1 supervisor, 2 admin, 3 fitter (Fern), 4 fitter (Fred),
                 5 factory, 6 user, 7 customsaddler, 8 blocked fitter
    fitters:     1 -> user 3, 2 -> user 4
    factories:   1 -> user 5
    customers:   1 (fitter 1, created_by 3), 2 (fitter 2, created_by 4), 3 (created_by 6)
    orders:      1 (fitter 1, factory 1), 2 (fitter 2), 3 (fitter 1)
    log:         one entry each for users 3, 4, 5, 6
"""
from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from saddle_authz.db import filters as _filters  # noqa: F401  (register authorization listeners)
from saddle_authz.security.context import AuthzContext, attach_context
from saddle_authz.security.evaluator import PolicyEvaluator
from saddle_authz.security.hierarchy import RoleHierarchy, load_role_hierarchy

TEST_DB_URL = "sqlite://"

HIERARCHY_PATH = Path(__file__).resolve().parents[1] / "saddle_authz" / "config" / "role_hierarchy.yaml"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from saddle_authz.db.base import Base
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session_factory(tables):
    """sessionmaker on the test engine; the database is discarded with the engine."""
    return sessionmaker(
        bind=tables,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )


@pytest.fixture
def db_session(session_factory):
    """
    Session with the system principal attached (seeding, setup, assertions on raw state).
    """
    session = session_factory()
    attach_context(session, AuthzContext.for_system())
    yield session
    session.close()


@pytest.fixture
def seeded(db_session):
    from saddle_authz.db.init_db import seed_demo_data
    seed_demo_data(db_session)
    return db_session


@pytest.fixture
def hierarchy() -> RoleHierarchy:
    return load_role_hierarchy(HIERARCHY_PATH)


@pytest.fixture
def evaluator(hierarchy) -> PolicyEvaluator:
    return PolicyEvaluator(hierarchy)


@pytest.fixture
def scoped_session(session_factory, evaluator):
    """Factory: open a session scoped to the given principal (closed after the test)."""
    opened: list[Session] = []

    def _open(principal):
        session = session_factory()
        attach_context(session, AuthzContext(principal=principal, evaluator=evaluator))
        opened.append(session)
        return session

    yield _open
    for session in opened:
        session.close()
