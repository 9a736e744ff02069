"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.plaid import _get_plaid_client
from database import Base, enable_sqlite_savepoints, get_db
from main import app
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    plaid_account,
    plaid_item,
    sync_log_entry,
)
from tests.fixtures.mocks import MockPlaidClient, feed_tx, make_page


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine with savepoint support."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="db")
def db_fixture(engine):
    """Create a session on the in-memory database for testing."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="mock_plaid_client")
def mock_plaid_client_fixture():
    """Mock Plaid client whose feed delivers two transactions in one page."""
    return MockPlaidClient(
        pages={
            None: make_page(
                "cursor-1",
                added=[
                    feed_tx("tx-1", 42.11, "2024-01-05"),
                    feed_tx("tx-2", 19.99, "2024-01-06", account_id="acct-credit"),
                ],
            ),
        },
        exchange_result=None,
    )


def _client_for(db, plaid_client):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[_get_plaid_client] = lambda: plaid_client
    return TestClient(app)


@pytest.fixture(name="client")
def client_fixture(db, mock_plaid_client):
    """Create a test client with the test database and the mock Plaid client."""
    client = _client_for(db, mock_plaid_client)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client_with_failing_plaid")
def client_with_failing_plaid_fixture(db):
    """Create a test client whose Plaid client rejects the API keys on every call."""
    client = _client_for(db, MockPlaidClient(should_fail=True, failure_type="config"))
    yield client
    app.dependency_overrides.clear()
