import os

# must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api_endpoints import app
from database import get_db, get_engine, init_db

# ---------- TEST FIXTURES ----------

@pytest.fixture(scope="function")
def engine():
    """A fresh in-memory database with the full schema for each test."""
    engine = get_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()

@pytest.fixture(scope="function")
def client(db_session):
    """Override get_db dependency for FastAPI TestClient."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

# ---------- TEST DATA HELPERS ----------

def user_data(first_name="Alice", last_name="Walker", email="alice@example.com", role="guest", password="s3cret-pass"):
    return {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "role": role,
        "password": password,
    }

def property_data(host_id, name="Cozy Cabin", location="Denver", price_per_night=120.0):
    return {
        "host_id": host_id,
        "name": name,
        "description": "Two rooms and a fireplace.",
        "location": location,
        "price_per_night": price_per_night,
    }

def booking_data(property_id, user_id, start="2025-01-01", end="2025-01-05", total_price=480.0, status="pending"):
    return {
        "property_id": property_id,
        "user_id": user_id,
        "start_date": start,
        "end_date": end,
        "total_price": total_price,
        "status": status,
    }
