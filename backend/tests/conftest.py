"""Shared test fixtures: in-memory SQLite sessions and API clients."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.database import create_db_engine, get_db, init_db
from app.main import app
from app.models.vessel import Vessel

# Fixed reference time for detector tests
NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def db():
    """In-memory SQLite database with all tables, shared across threads."""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def make_vessel(db):
    """Factory for committed vessels; registered a week before ``NOW`` by default."""
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        fields = {
            "name": f"TEST VESSEL {counter['n']}",
            "imo": f"91000{counter['n']:02d}",
            "build_date": NOW - timedelta(days=7),
        }
        fields.update(kwargs)
        vessel = Vessel(**fields)
        db.add(vessel)
        db.commit()
        return vessel

    return _make


@pytest.fixture
def mock_db():
    """MagicMock database session — returns None for all queries by default."""
    session = MagicMock()
    session.query.return_value.filter.return_value.first.return_value = None
    session.query.return_value.filter.return_value.all.return_value = []
    return session


def _client_for(session):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    with patch("app.database.init_db"), \
         patch.object(settings, "ALERT_SCHEDULER_ENABLED", False):
        with TestClient(app) as client:
            yield client
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(mock_db):
    """TestClient with DB dependency overridden to use a MagicMock session."""
    yield from _client_for(mock_db)


@pytest.fixture
def sqlite_client(db):
    """TestClient backed by the in-memory SQLite session."""
    yield from _client_for(db)
