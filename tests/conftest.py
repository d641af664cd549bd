"""Pytest fixtures for testing"""

import os

# Must be set before billing_gateway.config builds its settings
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from datetime import datetime, timezone
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from billing_gateway.api.main import create_app
from billing_gateway.domain.models import Advance, TransactionStatus
from billing_gateway.infrastructure.database.models import Base
from billing_gateway.infrastructure.database.repositories import TransactionRepository
from billing_gateway.infrastructure.database.session import build_engine, build_session_factory, get_db
from billing_gateway.infrastructure.scheduling.debits_scheduler import DebitsScheduler


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = build_session_factory(engine)

# Fixed funding time so weekly offsets are easy to read in assertions
T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repository(db: Session) -> TransactionRepository:
    return TransactionRepository(db)


@pytest.fixture
def create_advance(db: Session, repository: TransactionRepository) -> Callable[..., Advance]:
    """Factory persisting (and committing) an advance"""

    def _create(
        dst_bank_account: str = "IL-000123",
        amount_cents: int = 30000,
        transaction_time: datetime = T0,
        status: TransactionStatus = TransactionStatus.SUCCESS,
    ) -> Advance:
        advance = repository.create_advance(dst_bank_account, amount_cents, transaction_time, status)
        db.commit()
        return advance

    return _create


@pytest.fixture
def scheduler(db: Session) -> DebitsScheduler:
    """Scheduler over the test database with 3-debit plans"""
    return DebitsScheduler(session_factory=TestingSessionLocal, number_of_debits=3, period_ms=1000)


@pytest.fixture
def client(db: Session, scheduler: DebitsScheduler) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app(scheduler=scheduler, start_scheduler=False)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
