# tests/conftest.py

import os

# Must be set before the application modules build their engine and settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CORS_ORIGINS"] = "http://localhost:5173"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from dataclasses import dataclass
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from app import auth_service
from app.db import SessionLocal, engine
from app.models import Base
from main import app

PASSWORD = "secret123"


@dataclass
class Actor:
    """A logged-in API client together with the user it acts as."""
    client: TestClient
    user: dict

    @property
    def id(self) -> int:
        return self.user["id"]


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_user(db) -> Callable[..., dict]:
    """Register a user directly through the service layer."""
    def _make(username: str, email: str = None, password: str = PASSWORD) -> dict:
        return auth_service.register(db, username, email or f"{username}@example.com", password)

    return _make


@pytest.fixture()
def login_as() -> Callable[[str], Actor]:
    """Register a user over HTTP and return a client holding their session cookie."""
    def _login(username: str) -> Actor:
        c = TestClient(app)
        email = f"{username}@example.com"
        r = c.post("/authRegister", json={"username": username, "email": email, "password": PASSWORD})
        assert r.status_code == 201, r.text
        r = c.post("/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text
        return Actor(client=c, user=r.json()["user"])

    return _login


@pytest.fixture()
def alice(login_as) -> Actor:
    return login_as("alice")


@pytest.fixture()
def bob(login_as) -> Actor:
    return login_as("bob")


@pytest.fixture()
def carol(login_as) -> Actor:
    return login_as("carol")
