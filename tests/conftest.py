"""
Shared fixtures: an in-memory SQLite store, repositories, acting users and
an HTTP client wired to the same store.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timeledger.domain.models.time_entry import TimeEntry
from timeledger.domain.models.user import ActingUser, UserRole
from timeledger.infrastructure.auth.jwt_handler import JWTHandler
from timeledger.infrastructure.db import models  # noqa: F401
from timeledger.infrastructure.db.database import Base, create_store_engine, get_db
from timeledger.infrastructure.repositories import (
    SQLAlchemyInvoiceRepository,
    SQLAlchemyTimeEntryRepository,
    SQLAlchemyTimerRepository,
    SQLAlchemyUserProfileRepository
)


EMPLOYEE_ID = "employee-1"
OTHER_EMPLOYEE_ID = "employee-2"
MANAGER_ID = "manager-1"


@pytest.fixture
def db_session():
    engine = create_store_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """Sessions on a file-backed store, each with its own connection."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def time_entry_repository(db_session):
    return SQLAlchemyTimeEntryRepository(db_session)


@pytest.fixture
def timer_repository(db_session):
    return SQLAlchemyTimerRepository(db_session)


@pytest.fixture
def invoice_repository(db_session):
    return SQLAlchemyInvoiceRepository(db_session)


@pytest.fixture
def user_profile_repository(db_session):
    return SQLAlchemyUserProfileRepository(db_session)


@pytest.fixture
def employee():
    return ActingUser(EMPLOYEE_ID, UserRole.EMPLOYEE)


@pytest.fixture
def other_employee():
    return ActingUser(OTHER_EMPLOYEE_ID, UserRole.EMPLOYEE)


@pytest.fixture
def manager():
    return ActingUser(MANAGER_ID, UserRole.MANAGER)


def make_entry(
    user_id=EMPLOYEE_ID,
    project_id="project-1",
    entry_date=date(2024, 3, 4),
    duration_minutes=60,
    start=None,
    end=None,
    **kwargs
) -> TimeEntry:
    """A draft entry; pass ``start``/``end`` as ``HH:MM`` to make it timed."""
    start_time = datetime.combine(entry_date, datetime.strptime(start, "%H:%M").time()) if start else None
    end_time = datetime.combine(entry_date, datetime.strptime(end, "%H:%M").time()) if end else None
    kwargs.setdefault("description", "Feature work")
    return TimeEntry(
        user_id=user_id,
        project_id=project_id,
        entry_date=entry_date,
        duration_minutes=None if start_time and end_time else duration_minutes,
        start_time=start_time,
        end_time=end_time,
        **kwargs
    )


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def client(db_session):
    from timeledger.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build ``Authorization`` headers for a user id and role."""
    handler = JWTHandler()

    def _headers(user_id: str = EMPLOYEE_ID, role: str = "employee", expires_minutes: int = 60):
        token = handler.generate_test_token(user_id, role=role, expires_minutes=expires_minutes)
        return {"Authorization": f"Bearer {token}"}

    return _headers
