"""
Pytest configuration and fixtures

IMPORTANT: All tests use transactional rollback isolation.
Nothing created during tests persists to the database.

Tests run against in-memory SQLite unless DATABASE_URL is already set.
"""
import pytest
import sys
import os
from datetime import date, datetime, timezone
from uuid import uuid4

# Settings are read at import time; configure before importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-recovery-journey-suite-0123456789")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("ENVIRONMENT", "test")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from core.database import Base, engine
import models  # noqa: F401
from services.recovery_catalog import load_catalog
from services.recovery_store import RecoveryStore
from services.recovery_tracker import RecoveryProgramTracker

TODAY = date(2025, 3, 10)
NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    """Create every table once for the whole run."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a database session with transactional rollback.

    Application code may commit and roll back freely; those become
    savepoint operations inside an outer transaction that is always
    rolled back after the test.
    """
    connection = engine.connect()
    transaction = connection.begin()

    session = Session(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    yield session

    # Rollback everything - nothing persists
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def store(db_session):
    return RecoveryStore(db_session)


@pytest.fixture
def clock():
    """Mutable clock so a test can move 'today' forward."""
    class Clock:
        today = TODAY
        now = NOW

    return Clock


@pytest.fixture
def tracker(store, catalog, clock):
    return RecoveryProgramTracker(
        store,
        catalog,
        today=lambda: clock.today,
        now=lambda: clock.now,
    )


@pytest.fixture
def patient_id():
    return f"patient-{uuid4()}"
