"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from collectbook.api.dependencies import get_audit_client, get_clock
from collectbook.api.main import create_app
from collectbook.config import settings
from collectbook.domain.business_date import BusinessClock
from collectbook.infrastructure.database.models import Base, Member
from collectbook.infrastructure.database.repositories import MemberRepository
from collectbook.infrastructure.database.session import get_db, transaction


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TZ = "Asia/Manila"

# Wednesday 2026-03-04, 10:00 in Manila
WEDNESDAY_10AM = datetime(2026, 3, 4, 2, 0, tzinfo=timezone.utc)


class Wallclock:
    """Settable stand-in for datetime.now"""

    def __init__(self, at: datetime):
        self.at = at

    def __call__(self) -> datetime:
        return self.at

    def advance(self, **kwargs) -> None:
        self.at += timedelta(**kwargs)


class RecordingAuditClient:
    """Audit sink that keeps events in memory"""

    def __init__(self):
        self.events = []

    async def notify(self, events, request_id=None) -> None:
        self.events.extend(events)


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
def rival_db(db: Session) -> Generator[Session, None, None]:
    """Second session on the same database, standing in for a concurrent request"""
    rival = TestingSessionLocal()
    try:
        yield rival
    finally:
        rival.close()


@pytest.fixture
def wallclock() -> Wallclock:
    return Wallclock(WEDNESDAY_10AM)


@pytest.fixture
def clock(wallclock: Wallclock) -> BusinessClock:
    """Business clock frozen at Wednesday 2026-03-04 10:00 Manila"""
    return BusinessClock(TZ, now=wallclock)


@pytest.fixture
def make_member(db: Session, clock: BusinessClock):
    """Factory enrolling a member `days_ago` business days before the clock's today"""

    def _make(
        balance: str = "5000.00",
        savings: str = "100.00",
        days_count: int = 0,
        days_ago: int = 0,
        first_name: str = "Maria",
        last_name: str = "Santos",
    ) -> Member:
        created = clock.now() - timedelta(days=days_ago)
        with transaction(db):
            member = MemberRepository(db).create_member(
                first_name=first_name,
                last_name=last_name,
                balance=Decimal(balance),
                savings=Decimal(savings),
                days_count=days_count,
                created_at=created,
                enrolled_on=clock.to_business_date(created),
            )
        return member

    return _make


@pytest.fixture
def audit_client() -> RecordingAuditClient:
    return RecordingAuditClient()


@pytest.fixture
def client(db: Session, clock: BusinessClock, audit_client: RecordingAuditClient) -> TestClient:
    """Create FastAPI test client with test database, frozen clock and in-memory audit sink"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_audit_client] = lambda: audit_client
    return TestClient(app)


@pytest.fixture
def job_key(monkeypatch) -> str:
    monkeypatch.setattr(settings, "jobs_api_key", "test-job-key")
    return "test-job-key"
