import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# must be set before config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret")

import mongomock
from bson import ObjectId
from fastapi.testclient import TestClient

import users
from database import create_document, ensure_indexes, get_db
from main import app
from schemas import Course, CreateUserRequest
from security import create_access_token

PASSWORD = "password123"


@pytest.fixture
def db():
    database = mongomock.MongoClient(tz_aware=True)["elearning_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(role="student", active=True, email=None, password=PASSWORD, name="Test User"):
        payload = CreateUserRequest(
            name=name,
            email=email or f"{role}-{ObjectId()}@example.com",
            password=password,
            confirm_password=password,
        )
        return users.insert_user(db, payload, role=role, active=active)
    return _make


@pytest.fixture
def make_course(db, make_user):
    def _make(instructor=None, **fields):
        instructor = instructor or make_user(role="instructor")
        fields.setdefault("title", "Intro to Python")
        return create_document(db, "course", Course(instructor=str(instructor["_id"]), **fields))
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": str(user["_id"])})
        return {"Authorization": f"Bearer {token}"}
    return _headers
