"""
Hostel Management - Test Configuration and Fixtures
"""
import os

import mongomock
import pytest
from faker import Faker
from fastapi.testclient import TestClient

# Set testing environment before the app modules read it
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from main import app  # noqa: E402
from database import ensure_indexes, get_db  # noqa: E402

fake = Faker()


@pytest.fixture
def db():
    """A fresh in-memory database for each test"""
    database = mongomock.MongoClient().hostel_test
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    """Test client with the database dependency pointed at mongomock"""
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(db):
    """Same app, but with /api as the base URL the way the console client sees it"""
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app, base_url="http://testserver/api")
    app.dependency_overrides.clear()


def student_data(**overrides):
    data = {
        "name": fake.name(),
        "email": fake.unique.email(),
        "password": "pw123",
        "role": "User",
        "room": str(fake.random_int(100, 499)),
        "contact": fake.phone_number(),
    }
    data.update(overrides)
    return data


def admin_data(**overrides):
    data = {
        "name": fake.name(),
        "email": fake.unique.email(),
        "password": "pw123",
        "role": "Admin",
    }
    data.update(overrides)
    return data


def register(client, data):
    response = client.post("/api/auth/register", json=data)
    assert response.status_code == 201, response.text
    body = response.json()
    return {"token": body["token"], "user": body["user"],
            "headers": {"Authorization": f"Bearer {body['token']}"}}


@pytest.fixture
def admin(client):
    return register(client, admin_data())


@pytest.fixture
def student(client):
    return register(client, student_data())


@pytest.fixture
def other_student(client):
    return register(client, student_data())
