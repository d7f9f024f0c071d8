"""Pytest configuration and shared fixtures."""
from __future__ import annotations

from pathlib import Path

import pytest

from geminitalk import create_app
from geminitalk.db import SessionLocal


@pytest.fixture()
def app(tmp_path: Path):
    """Flask app bound to a fresh SQLite file."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "SECRET_KEY": "test-secret-key-for-jwt-signing-0123456789",
        "ADMIN_PASSWORD": "1234",
    })
    yield app
    SessionLocal.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def db(app):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def admin_headers(client) -> dict:
    r = client.post("/api/login", json={"username": "admin", "password": "1234"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.get_json()['token']}"}

