# tests/test_auth.py

from datetime import timedelta

import pytest

from app import auth_service
from app.config import settings
from app.errors import Conflict, Unauthorized
from app.models import SessionRecord, User, utcnow
from auth import sessions
from tests.conftest import PASSWORD

COOKIE = settings.session_cookie_name


def test_register_returns_public_projection(client) -> None:
    r = client.post(
        "/authRegister",
        json={"username": "  dave ", "email": " Dave@Example.COM ", "password": PASSWORD},
    )
    assert r.status_code == 201
    user = r.json()["user"]
    assert user["username"] == "dave"
    assert user["email"] == "dave@example.com"
    assert set(user) == {"id", "username", "email"}


def test_password_is_stored_hashed(db, make_user) -> None:
    user = make_user("erin")
    row = db.get(User, user["id"])
    assert row.password != PASSWORD
    assert row.password.startswith("$2")


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"username": "alice", "email": "other@example.com"}, "Username already exists"),
        ({"username": "other", "email": "ALICE@example.com"}, "Email already exists"),
    ],
)
def test_duplicate_registration_conflicts_without_new_row(client, db, make_user, payload, message) -> None:
    make_user("alice")
    r = client.post("/authRegister", json={**payload, "password": PASSWORD})
    assert r.status_code == 409
    assert r.json()["message"] == message
    assert db.query(User).count() == 1


def test_register_service_raises_conflict(db, make_user) -> None:
    make_user("frank")
    with pytest.raises(Conflict):
        auth_service.register(db, "frank", "new@example.com", PASSWORD)


@pytest.mark.parametrize(
    "payload",
    [
        {"username": "ab", "email": "ab@example.com", "password": PASSWORD},
        {"username": "valid", "email": "not-an-email", "password": PASSWORD},
        {"username": "valid", "email": "v@example.com", "password": "123"},
        {"email": "v@example.com", "password": PASSWORD},
    ],
)
def test_register_validation_errors(client, payload) -> None:
    r = client.post("/authRegister", json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == "Validation failed"


def test_login_sets_http_only_cookie(client, make_user) -> None:
    make_user("gina")
    r = client.post("/login", json={"email": "GINA@example.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "gina"
    set_cookie = r.headers["set-cookie"]
    assert COOKIE in set_cookie
    assert "httponly" in set_cookie.lower()
    assert "samesite=lax" in set_cookie.lower()


@pytest.mark.parametrize(
    "email, password",
    [("hank@example.com", "wrong-password"), ("nobody@example.com", PASSWORD)],
)
def test_login_rejects_bad_credentials(client, make_user, email, password) -> None:
    make_user("hank")
    r = client.post("/login", json={"email": email, "password": password})
    assert r.status_code == 401
    assert COOKIE not in client.cookies


def test_login_validation_error(client) -> None:
    r = client.post("/login", json={"email": "", "password": ""})
    assert r.status_code == 400


def test_protected_route_requires_session(client) -> None:
    assert client.get("/teams").status_code == 401
    assert client.get("/me").status_code == 401


def test_me_returns_current_user(alice) -> None:
    r = alice.client.get("/me")
    assert r.status_code == 200
    assert r.json()["user"] == alice.user


def test_logout_is_idempotent(alice) -> None:
    sid = alice.client.cookies.get(COOKIE)
    assert sid

    first = alice.client.post("/logout")
    second = alice.client.post("/logout")
    assert first.status_code == 200
    assert second.status_code == 200

    assert alice.client.get("/me").status_code == 401
    # The old id must not be accepted again either
    alice.client.cookies.set(COOKIE, sid)
    assert alice.client.get("/me").status_code == 401


def test_logout_without_session_succeeds(client) -> None:
    assert client.post("/logout").status_code == 200


def test_login_replaces_previous_session(db, alice) -> None:
    old_sid = alice.client.cookies.get(COOKIE)
    r = alice.client.post("/login", json={"email": alice.user["email"], "password": PASSWORD})
    assert r.status_code == 200
    new_sid = alice.client.cookies.get(COOKIE)
    assert new_sid != old_sid
    assert db.get(SessionRecord, old_sid) is None
    assert db.get(SessionRecord, new_sid) is not None


def test_expired_session_is_rejected_and_removed(db, alice) -> None:
    sid = alice.client.cookies.get(COOKIE)
    record = db.get(SessionRecord, sid)
    record.expire = utcnow() - timedelta(seconds=1)
    db.commit()

    assert alice.client.get("/me").status_code == 401
    db.expire_all()
    assert db.get(SessionRecord, sid) is None


def test_session_expiry_slides_forward(db, alice) -> None:
    sid = alice.client.cookies.get(COOKIE)
    record = db.get(SessionRecord, sid)
    record.expire = utcnow() + timedelta(seconds=30)
    db.commit()

    assert alice.client.get("/me").status_code == 200
    db.expire_all()
    refreshed = db.get(SessionRecord, sid)
    assert refreshed.expire > utcnow() + timedelta(seconds=settings.session_ttl_seconds - 60)


def test_resolve_user_without_session(db) -> None:
    with pytest.raises(Unauthorized):
        auth_service.resolve_user(db, None)
    with pytest.raises(Unauthorized):
        auth_service.resolve_user(db, "does-not-exist")


def test_purge_expired_sessions(db, make_user) -> None:
    user = make_user("ivan")
    live = sessions.create_session(db, user["id"])
    stale = sessions.create_session(db, user["id"])
    stale.expire = utcnow() - timedelta(minutes=5)
    db.commit()

    assert sessions.purge_expired_sessions(db) == 1
    db.expire_all()
    assert db.get(SessionRecord, live.sid) is not None
    assert db.get(SessionRecord, stale.sid) is None


def test_user_profile_is_owner_only(alice, bob) -> None:
    assert alice.client.get(f"/users/{alice.id}").json()["user"] == alice.user
    r = alice.client.get(f"/users/{bob.id}")
    assert r.status_code == 403
