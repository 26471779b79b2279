"""
Integration fixtures: the FastAPI app wired to the in-memory test database.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.db.db import get_session
from app.main import app
from app.utils.auth_helper import create_access_token


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return headers


@pytest.fixture
def admin(make_user):
    return make_user("Admin", role="admin")


def recent(hours: float) -> str:
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()


@pytest.fixture
def lost_payload():
    return {
        "title": "Samsung Galaxy A14",
        "description": "Black Samsung phone, call 0788123456",
        "category": "PHONE",
        "location_area": "Kimironko",
        "date": recent(6),
        "security_questions": [
            {"question": "What is your lockscreen wallpaper?", "answer": "sunset over lake kivu"},
            {"question": "What are the last 4 digits of the IMEI number?", "answer": "4821"},
            {"question": "Name one specific app on the home screen", "answer": "irembo"},
        ],
    }


@pytest.fixture
def found_payload():
    return {
        "title": "Samsung phone",
        "description": "Black Samsung phone found at the bus stop",
        "category": "PHONE",
        "location_area": "Remera",
        "date": recent(2),
    }


@pytest.fixture
def report(client, auth, lost_payload, found_payload):
    """Post a lost/found pair through the API and return their ids."""
    def post(owner, finder):
        lost = client.post("/items/lost", json=lost_payload, headers=auth(owner))
        found = client.post("/items/found", json=found_payload, headers=auth(finder))
        assert lost.status_code == 200, lost.text
        assert found.status_code == 200, found.text
        return lost.json()["item"]["id"], found.json()["item"]["id"]

    return post
