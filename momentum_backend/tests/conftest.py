"""
Shared fixtures: an in-memory SQLite database per test, a fixed clock,
the seeded activity catalog and profile/goal factories.
"""
import os
import tempfile
import uuid
from datetime import datetime

os.environ.setdefault("MOMENTUM_DATABASE_URL", "sqlite://")
os.environ.setdefault("MOMENTUM_LOG_DIR", os.path.join(tempfile.gettempdir(), "momentum-test-logs"))
os.environ.setdefault("MOMENTUM_API_KEY", "test-api-key")
os.environ.setdefault("MOMENTUM_ADMIN_KEY", "test-admin-key")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from momentum_backend.database import Base
from momentum_backend import models  # noqa: F401  (registers tables)
from momentum_backend.schemas import GoalCreate, ProfileCreate
from momentum_backend.repositories.settings_repository import SettingsRepository
from momentum_backend.services.catalog_service import CatalogService
from momentum_backend.services.goal_service import GoalService
from momentum_backend.services.profile_service import ProfileService


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session():
    """Fresh schema for every test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def now():
    """Fixed evaluation time: Wednesday 2024-01-10 12:00 UTC"""
    return datetime(2024, 1, 10, 12, 0)


@pytest.fixture
def default_settings(db_session):
    settings = SettingsRepository.get(db_session)
    db_session.commit()
    return settings


@pytest.fixture
def catalog(db_session):
    """Seeded catalog keyed by activity label"""
    service = CatalogService(db_session)
    service.seed_defaults()
    return {entry.activity_label: entry for entry in service.list_activities()}


@pytest.fixture
def create_profile(db_session, default_settings):
    """Factory creating a profile (and its momentum state)"""
    def _create(username, is_public=True, goal_slots=None):
        profile = ProfileService(db_session).create_profile(
            str(uuid.uuid4()),
            ProfileCreate(username=username, is_public=is_public)
        )
        if goal_slots is not None:
            profile.goal_slots = goal_slots
            db_session.commit()
        return profile
    return _create


@pytest.fixture
def create_goal(db_session, catalog, now):
    """Factory creating an active goal for a profile"""
    def _create(owner, label="Running", frequency=3, start_date=None, description=None):
        return GoalService(db_session).create_goal(
            owner.id,
            GoalCreate(
                activity_id=catalog[label].id,
                goal_description=description or f"{label} {frequency}x/week",
                frequency=frequency,
                start_date=start_date or now.date(),
            ),
            now=now
        )
    return _create
