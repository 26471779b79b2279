"""
Root test configuration.

Test organization:
- unit/        Service functions against an in-memory database
- integration/ HTTP round trips through the FastAPI app

Run specific levels:
    pytest tests/unit -v
    pytest tests/integration -v
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.models import claim, found_item, lost_item, notification, scam_report, trust_ledger, trust_profile, user  # noqa: F401
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.models.user import User
from app.services.trust import get_or_create_profile

# Fixed clock for everything time based
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

DEFAULT_QUESTIONS = (
    ("What is your lockscreen wallpaper?", "sunset over lake kivu"),
    ("What are the last 4 digits of the IMEI number?", "4821"),
    ("Name one specific app on the home screen", "irembo"),
)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    """Factory for users; accounts are a month old unless told otherwise."""
    def make(name="Aline", role="citizen", created_at=None, **flags):
        db_user = User(
            public_id=uuid.uuid4().hex,
            name=name,
            email=f"{name.lower()}.{uuid.uuid4().hex[:6]}@example.rw",
            role=role,
            created_at=created_at or NOW - timedelta(days=30),
            **flags,
        )
        session.add(db_user)
        session.commit()
        session.refresh(db_user)
        return db_user

    return make


@pytest.fixture
def make_lost(session):
    def make(owner, category="PHONE", title="Samsung Galaxy A14", description="Black Samsung phone with a cracked corner",
             location_area="Kimironko", lost_date=None, questions=DEFAULT_QUESTIONS, created_at=None):
        item = LostItem(
            user_id=owner.id,
            title=title,
            category=category,
            description=description,
            location_area=location_area,
            lost_date=lost_date or NOW - timedelta(hours=6),
            created_at=created_at or NOW - timedelta(hours=5),
            question_1=questions[0][0],
            answer_1=questions[0][1],
            question_2=questions[1][0],
            answer_2=questions[1][1],
            question_3=questions[2][0],
            answer_3=questions[2][1],
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return make


@pytest.fixture
def make_found(session):
    def make(finder, category="PHONE", title="Samsung phone", description="Black Samsung phone found on a moto seat",
             location_area="Remera", found_date=None, created_at=None):
        item = FoundItem(
            user_id=finder.id,
            title=title,
            category=category,
            description=description,
            location_area=location_area,
            found_date=found_date or NOW - timedelta(hours=2),
            created_at=created_at or NOW - timedelta(hours=1),
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return make


@pytest.fixture
def set_score(session):
    """Force a user's trust score, bypassing the event table."""
    def set_(db_user, score):
        profile = get_or_create_profile(session, db_user.id)
        profile.score = score
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return set_


@pytest.fixture
def owner(make_user):
    return make_user("Aline")


@pytest.fixture
def finder(make_user):
    return make_user("Jean")


@pytest.fixture
def stranger(make_user):
    return make_user("Eric")
