from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from orderdesk import crud
from orderdesk.config import load_settings
from orderdesk.db import enable_sqlite_foreign_keys, init_db, make_session_factory
from orderdesk.main import create_app

TEST_SECRET = "test-secret"


@pytest.fixture(scope="function")
def settings(tmp_path):
    return load_settings({"JWT_SECRET": TEST_SECRET, "UPLOAD_DIR": str(tmp_path / "uploads")})


@pytest.fixture(scope="function")
def engine():
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator:
    db = make_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture(scope="function")
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    def _register(email="a@x.com", password="pw", name="A", user_class="C1", phone="555"):
        r = client.post(
            "/api/register",
            json={"name": name, "email": email, "user_class": user_class, "phone": phone, "password": password},
        )
        assert r.status_code == 201, r.text
        return r.json()["userId"]

    return _register


@pytest.fixture
def login(client):
    def _login(email="a@x.com", password="pw"):
        r = client.post("/api/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return r.json()["token"]

    return _login


@pytest.fixture
def user_token(register, login):
    register()
    return login()


@pytest.fixture
def admin_token(register, login, db_session):
    register(email="boss@x.com", password="adminpass", name="Boss")
    crud.set_role(db_session, "boss@x.com", "admin")
    return login("boss@x.com", "adminpass")
