"""Tests for the admin shell: status page, audit trail, account management."""
import pytest
from werkzeug.security import generate_password_hash

from app.smartvocab import create_app
from app.smartvocab.db import session_scope
from app.smartvocab.models import AuditEvent, Base, Permission, Role, User


def _seed_admin_permissions(s):
    perms = []
    for key, name in (("admin.view", "Admin: view shell"), ("admin.edit", "Admin: manage accounts")):
        p = Permission(key=key, name=name)
        s.add(p)
        perms.append(p)
    return perms


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        r = Role(key="admin", name="Administrator")
        r.permissions.extend(_seed_admin_permissions(s))
        u = User(name="Admin", email="admin@example.com", password_hash=generate_password_hash("pw"))
        u.roles.append(r)
        s.add_all([r, u])
        s.add(User(name="Anna", email="anna@example.com", password_hash=generate_password_hash("pw")))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="admin@example.com"):
    return client.post("/auth/login", data={"email": email, "password": "pw"}, follow_redirects=True)


def _csrf(client) -> str:
    with client.session_transaction() as sess:
        return sess.setdefault("csrf_token", "test-csrf-token")


def _user_id(app, email) -> int:
    with session_scope(app) as s:
        return s.query(User.id).filter(User.email == email).one()[0]


def test_admin_index_shows_status_and_counts(client):
    _login(client)
    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"connected" in r.data
    assert b"Users: 2" in r.data


def test_admin_forbidden_for_learner(client):
    _login(client, "anna@example.com")
    r = client.get("/admin/")
    assert r.status_code == 403
    assert b"admin.view" in r.data


def test_audit_trail_lists_logins(client):
    _login(client)
    r = client.get("/admin/audit?action=auth.login")
    assert r.status_code == 200
    assert b"auth.login" in r.data
    assert b"admin@example.com" in r.data


def test_audit_trail_bad_date_flashes(client):
    _login(client)
    r = client.get("/admin/audit?date_from=yesterday")
    assert r.status_code == 200
    assert b"date_from must be YYYY-MM-DD" in r.data


def test_deactivate_account_blocks_login(app, client):
    _login(client)
    anna_id = _user_id(app, "anna@example.com")
    r = client.post(f"/admin/accounts/{anna_id}/active", data={"csrf_token": _csrf(client), "is_active": "0"})
    assert r.status_code == 302

    with session_scope(app) as s:
        assert s.get(User, anna_id).is_active is False
        ev = s.query(AuditEvent).filter(AuditEvent.action == "user.update").one()
        assert ev.entity_id == str(anna_id)
        assert ev.client_ip is not None

    client.post("/auth/logout")
    r = _login(client, "anna@example.com")
    assert b"Invalid credentials." in r.data


def test_cannot_deactivate_self(app, client):
    _login(client)
    admin_id = _user_id(app, "admin@example.com")
    r = client.post(
        f"/admin/accounts/{admin_id}/active",
        data={"csrf_token": _csrf(client), "is_active": "0"},
        follow_redirects=True,
    )
    assert b"You cannot deactivate your own account." in r.data
    with session_scope(app) as s:
        assert s.get(User, admin_id).is_active is True


def test_accounts_list(client):
    _login(client)
    r = client.get("/admin/accounts")
    assert r.status_code == 200
    assert b"anna@example.com" in r.data
    assert b"Deactivate" in r.data
