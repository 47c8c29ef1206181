"""
Test configuration and fixtures.

Provides:
- A fresh file-backed SQLite database per test (foreign keys on)
- A session factory shared by the test and the scheduler under test
- A fixed, advanceable clock
- Tenant / user factories
"""
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

import pytest

# Settings are read at import time; tests never touch a real database
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("TESTING", "true")

from sqlalchemy.orm import Session, sessionmaker

from erasure.db.base import Base
from erasure.db.models import Tenant, User, UserTenant
from erasure.db.session import build_engine
from erasure.scheduler import DeleteJobScheduler


class FixedClock:
    """Deterministic clock for scheduler and service calls."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db_engine(tmp_path):
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'erasure.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    """
    Session for arranging and asserting.

    Always commit before running the scheduler: it writes through its own
    sessions. Call db.expire_all() before reading what the scheduler wrote.
    """
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def scheduler(session_factory, clock) -> DeleteJobScheduler:
    return DeleteJobScheduler(session_factory, poll_interval=0, clock=clock)


@pytest.fixture(scope="function")
def admin_id() -> uuid.UUID:
    return uuid.uuid4()


# =============================================================================
# Tenant / User Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def tenant_factory(db: Session) -> Callable[..., Tenant]:
    def _make(name: str = "Acme Salon") -> Tenant:
        tenant = Tenant(
            id=uuid.uuid4(),
            name=name,
            slug=f"tenant-{uuid.uuid4().hex[:8]}",
        )
        db.add(tenant)
        db.commit()
        return tenant

    return _make


@pytest.fixture(scope="function")
def user_factory(db: Session) -> Callable[..., User]:
    def _make(*tenants: Tenant, first_name: str = "Test") -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"test-{uuid.uuid4().hex[:8]}@test.com",
            first_name=first_name,
            last_name="User",
        )
        db.add(user)
        db.flush()
        for tenant in tenants:
            db.add(UserTenant(user_id=user.id, tenant_id=tenant.id))
        db.commit()
        return user

    return _make


@pytest.fixture(scope="function")
def test_tenant(tenant_factory) -> Tenant:
    return tenant_factory()


@pytest.fixture(scope="function")
def test_user(user_factory, test_tenant) -> User:
    """User with a single membership in test_tenant."""
    return user_factory(test_tenant)
