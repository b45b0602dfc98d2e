import pytest

from orderdesk import models


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_register_then_login(client):
    r = client.post(
        "/api/register",
        json={"name": "A", "email": "a@x.com", "user_class": "C1", "phone": "555", "password": "pw"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "User registered successfully!"
    assert isinstance(body["userId"], int)

    r = client.post("/api/login", json={"email": "a@x.com", "password": "pw"})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Login successful!"
    assert body["token"]
    assert body["name"] == "A"
    assert body["role"] == "user"


def test_password_is_stored_hashed(client, register, db_session):
    uid = register(password="plain-text-pw")
    user = db_session.get(models.User, uid)
    assert user.password_hash != "plain-text-pw"
    assert "plain-text-pw" not in user.password_hash


@pytest.mark.parametrize("missing", ["name", "email", "user_class", "phone", "password"])
def test_register_requires_every_field(client, missing):
    payload = {"name": "A", "email": "a@x.com", "user_class": "C1", "phone": "555", "password": "pw"}
    payload[missing] = ""
    r = client.post("/api/register", json=payload)
    assert r.status_code == 400
    assert r.json()["message"] == "All fields are required."

    del payload[missing]
    r = client.post("/api/register", json=payload)
    assert r.status_code == 400


def test_duplicate_email_conflicts_without_partial_write(client, register, db_session):
    register(email="dup@x.com", name="First")
    r = client.post(
        "/api/register",
        json={"name": "Second", "email": "dup@x.com", "user_class": "C2", "phone": "1", "password": "other"},
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Email already exists."

    users = db_session.query(models.User).filter(models.User.email == "dup@x.com").all()
    assert [u.name for u in users] == ["First"]


def test_email_match_ignores_case(client, register, login):
    register(email="Case@X.com")
    assert login("case@x.com")

    r = client.post(
        "/api/register",
        json={"name": "B", "email": "CASE@x.com", "user_class": "C1", "phone": "1", "password": "pw"},
    )
    assert r.status_code == 409


def test_login_requires_email_and_password(client):
    r = client.post("/api/login", json={"email": "a@x.com"})
    assert r.status_code == 400
    assert r.json()["message"] == "Please provide email and password."

    r = client.post("/api/login", json={"password": "pw"})
    assert r.status_code == 400


def test_login_failures_are_indistinguishable(client, register):
    register(email="known@x.com", password="right")

    wrong_pw = client.post("/api/login", json={"email": "known@x.com", "password": "wrong"})
    unknown = client.post("/api/login", json={"email": "nobody@x.com", "password": "right"})

    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json() == unknown.json()
    assert wrong_pw.json()["message"] == "Invalid credentials."


def test_non_json_body_is_bad_request(client):
    r = client.post("/api/login", content=b"not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["code"] == "BAD_REQUEST"
