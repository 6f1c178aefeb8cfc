"""
Shared fixtures: in-memory database, users for each role, actors and a
recording notification dispatcher.
"""
import os

# Test environment: no audit file, no background notification pool
os.environ.setdefault("AUDIT_LOG_FILE", "")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-atelier-tests")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import atelier.models  # noqa: F401 - registers tables
from atelier.core.permissions import Actor
from atelier.db.base import Base
from atelier.models.measurement import MeasurementProfile
from atelier.models.user import User


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingDispatcher:
    """Collects notify() calls instead of delivering them"""

    def __init__(self):
        self.calls = []

    def notify(self, user_id, title, message, category, link_url=None):
        self.calls.append({
            "user_id": user_id,
            "title": title,
            "message": message,
            "category": category,
            "link_url": link_url,
        })


class FailingDispatcher:
    def notify(self, user_id, title, message, category, link_url=None):
        raise RuntimeError("notification backend down")


@pytest.fixture
def db_session():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def users(db_session):
    """One user per role, keyed by role name"""
    created = {}
    for role in ("SUPER_ADMIN", "ADMIN", "STAFF", "CUSTOMER"):
        user = User(email=f"{role.lower()}@atelier.test", name=f"{role.title()} User", role=role)
        db_session.add(user)
        created[role] = user
    db_session.commit()
    return created


@pytest.fixture
def staff(users):
    return Actor(user_id=users["STAFF"].id, role="STAFF")


@pytest.fixture
def admin(users):
    return Actor(user_id=users["ADMIN"].id, role="ADMIN")


@pytest.fixture
def customer(users):
    return Actor(user_id=users["CUSTOMER"].id, role="CUSTOMER")


@pytest.fixture
def session_factory():
    """Session factory bound to the test database"""
    return TestingSessionLocal


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher():
    return FailingDispatcher()


@pytest.fixture
def measurement(db_session, users):
    profile = MeasurementProfile(
        user_id=users["CUSTOMER"].id,
        label="Wedding Suit",
        chest=102,
        waist=86,
        sleeve_length=64,
    )
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def order_payload():
    return {
        "customer_name": "Amara Okafor",
        "customer_email": "amara@example.com",
        "customer_phone": "+2348012345678",
        "design_description": "Three-piece agbada, gold embroidery",
        "estimated_price": "450.00",
    }
