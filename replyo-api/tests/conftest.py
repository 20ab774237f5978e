from unittest.mock import Mock

import pytest

from replyo.config import settings
from replyo.conversations.types import BusinessData, ConversationSession


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture(autouse=True)
def _disable_rate_limits(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", False)


@pytest.fixture
def admin_token(monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")
    return "admin-secret"


@pytest.fixture
def business_data():
    return BusinessData(
        id="biz-1",
        business_name="Glow Studio",
        booking_link="https://book.example.com/glow",
        phone="+44 20 7946 0000",
        location="12 High Street, London",
        hours="Mon-Sat 9-6",
        industry="beauty",
    )


@pytest.fixture
def session():
    return ConversationSession(conversation_id="conv-1")


@pytest.fixture
def client(db_session):
    """TestClient whose requests share the mock database session."""
    from fastapi.testclient import TestClient

    from replyo.database import get_db
    from replyo.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
