"""
tests/conftest.py — Shared pytest configuration and fixtures.

Sets environment variables BEFORE any app module is imported, so that
pydantic-settings has a database URL and the AI helpers run without a key.

Every test gets a session on an in-memory SQLite database inside an outer
transaction that is rolled back afterwards; commits made by the code under
test only release a SAVEPOINT.
"""

import os

# ── Environment before any app module is imported ────────────────────────────
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["OPENAI_API_KEY"] = ""
os.environ["DATA_SOURCE"] = "memory"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.db.models import Base
from app.db.session import get_db
from api.main import app


# ── Engine ────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def engine():
    """
    One in-memory database for the whole run.

    pysqlite's own transaction handling is switched off so SAVEPOINTs work,
    and foreign keys are enforced so ON DELETE CASCADE behaves as in PostgreSQL.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """A session whose work is discarded at the end of the test."""
    connection = engine.connect()
    outer = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    try:
        yield session
    finally:
        session.close()
        outer.rollback()
        connection.close()


@pytest.fixture
def client(db):
    """TestClient wired to the test session (the lifespan pool is never opened)."""

    def _get_db():
        # Each request starts with an empty identity map, like a fresh session
        db.expunge_all()
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
