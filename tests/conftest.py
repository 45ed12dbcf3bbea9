"""Test configuration and fixtures for the catalog API."""

from typing import Dict

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import USERS, create_document
from main import create_app
from schemas import User
from security import hash_password
from tests.utils import PASSWORD, bearer


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", jwt_secret="test-secret", mongodb_db="catalog_test")


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def app(settings, mongo_client):
    return create_app(settings, client=mongo_client)


@pytest.fixture(name="client")
def client_fixture(app):
    """Create a test client; entering it runs the app lifespan."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(client, mongo_client, settings):
    return mongo_client[settings.mongodb_db]


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(PASSWORD)


def _insert_user(db, password_hash: str, email: str, role: str) -> dict:
    user = User(name=email.split("@")[0], email=email, password_hash=password_hash, role=role)
    return create_document(db, USERS, user)


@pytest.fixture
def admin_user(db, password_hash) -> dict:
    return _insert_user(db, password_hash, "admin@example.com", "admin")


@pytest.fixture
def regular_user(db, password_hash) -> dict:
    return _insert_user(db, password_hash, "user@example.com", "user")


@pytest.fixture
def admin_headers(admin_user, settings) -> Dict[str, str]:
    return bearer(admin_user, settings)


@pytest.fixture
def user_headers(regular_user, settings) -> Dict[str, str]:
    return bearer(regular_user, settings)
