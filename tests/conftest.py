"""Test configuration and fixtures.

Provides an isolated file-backed SQLite database so tests don't depend on the
developer's local database, and helpers to stand in for a browser tab that has
its SSE stream open: patches pushed to that tab land in ``conn.outbox``.
"""

import os
from typing import Generator, List

# Set env flags BEFORE importing application modules
os.environ.setdefault("DEBUG", "1")
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test_db.sqlite")

import asyncio
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import database  # original module with Base & SessionLocal placeholder
from database import Base, get_db
from main import app  # imports routers & models
from realtime import SSEConnection
from security import CSRF_COOKIE, CSRF_HEADER
from client_identity import CLIENT_ID_COOKIE

# Use file-based SQLite to persist across multiple connections (in-memory would be per-connection)
TEST_DATABASE_URL = os.environ["TEST_DATABASE_URL"]

engine = create_engine(
    TEST_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def create_test_db() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:  # type: ignore
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        # Every test starts from empty tables
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session):  # type: ignore
    """Override FastAPI dependency to use the SQLite session."""
    def _get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db

    # Also redirect direct imports of SessionLocal within tests/modules
    database.SessionLocal = TestingSessionLocal  # type: ignore
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(scope="session")
def client() -> TestClient:  # type: ignore
    return TestClient(app)


@pytest.fixture()
def browser() -> TestClient:
    """A fresh cookie jar that has loaded one page, so it holds client id and CSRF cookies."""
    tab = TestClient(app)
    response = tab.get("/entry")
    assert response.status_code == 200
    tab.headers[CSRF_HEADER] = tab.cookies[CSRF_COOKIE]
    return tab


@pytest.fixture()
def stream(browser) -> Generator[SSEConnection, None, None]:
    """The browser tab's SSE connection, registered the way ``GET /sse`` does it."""
    client_id = browser.cookies[CLIENT_ID_COOKIE]
    conn = SSEConnection(client_id)
    app.state.registry.add(client_id, conn)
    yield conn
    app.state.registry.remove(client_id, conn)


def drain(conn: SSEConnection) -> List:
    """Every frame queued on ``conn`` so far, oldest first."""
    frames = []
    while True:
        try:
            frames.append(conn.outbox.get_nowait())
        except asyncio.QueueEmpty:
            return frames
