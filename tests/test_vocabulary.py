"""Tests for vocabulary cards: service, dashboard views, admin CRUD."""
import pytest
from sqlalchemy import event
from werkzeug.security import generate_password_hash

from app.smartvocab import create_app
from app.smartvocab.db import session_scope
from app.smartvocab.models import AuditEvent, Base, Permission, Role, User
from app.smartvocab.modules.vocabulary.models import CardView, VocabularyCard
from app.smartvocab.modules.vocabulary.service import (
    count_cards_by_level,
    create_card,
    get_level,
    get_vocabulary_by_level,
    mark_card_viewed,
    next_card_id,
    seed_vocabulary,
    validate_card_payload,
    viewed_card_ids,
)


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
        seed_vocabulary(s)
        perms = [Permission(key="cards.view", name="Cards: view"), Permission(key="cards.edit", name="Cards: edit")]
        editor = Role(key="editor", name="Editor")
        editor.permissions.extend(perms)
        admin = User(name="Admin", email="admin@example.com", password_hash=generate_password_hash("pw"))
        admin.roles.append(editor)
        learner = User(name="Anna", email="anna@example.com", password_hash=generate_password_hash("pw"))
        s.add_all(perms + [editor, admin, learner])
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="anna@example.com"):
    client.post("/auth/login", data={"email": email, "password": "pw"}, follow_redirects=True)


def _csrf(client) -> str:
    with client.session_transaction() as sess:
        return sess.setdefault("csrf_token", "test-csrf-token")


# ---------- Service ----------
def test_seed_is_idempotent(app):
    with session_scope(app) as s:
        assert s.query(VocabularyCard).count() == 54
        assert seed_vocabulary(s) == 0
        assert count_cards_by_level(s) == {lv: 9 for lv in ("A1", "A2", "B1", "B2", "C1", "C2")}


def test_cards_ordered_by_position(app):
    with session_scope(app) as s:
        cards = get_vocabulary_by_level(s, "a1")
        assert [c.id for c in cards][:3] == ["a1-1", "a1-2", "a1-3"]
        assert cards[0].english == "Hello"
        assert all(c.level == "A1" for c in cards)


def test_get_level_case_insensitive():
    assert get_level("b2").name == "Upper Intermediate"
    assert get_level("Z9") is None
    assert get_level(None) is None


def test_mark_card_viewed_once(app):
    with session_scope(app) as s:
        u = s.query(User).filter(User.email == "anna@example.com").one()
        card = s.get(VocabularyCard, "b1-2")
        assert mark_card_viewed(s, u, card) is True
        assert mark_card_viewed(s, u, card) is False
        assert viewed_card_ids(s, u) == {"b1-2"}
        assert viewed_card_ids(s, u, []) == set()
        assert s.query(CardView).count() == 1


def test_mark_card_viewed_loses_race_quietly(app):
    with session_scope(app) as s:
        u = s.query(User).filter(User.email == "anna.com").one()
        card = s.get(VocabularyCard, "c1-3")
        user_id = u.id

        # Another request stores the same view after our existence check.
        @event.listens_for(s, "before_flush", once=True)
        def _other_request_wins(session, flush_context, instances):
            with session_scope(app) as other:
                other.add(CardView(user_id=user_id, card_id="c1-3"))

        assert mark_card_viewed(s, u, card) is False

    with session_scope(app) as s:
        assert s.query(CardView).filter(CardView.card_id == "c1-3").count() == 1


def test_next_card_id_and_create(app):
    with session_scope(app) as s:
        assert next_card_id(s, "A1") == "a1-10"
        card = create_card(s, {"english": "Water", "czech": "Voda", "level": "a1"}, None)
        assert card.id == "a1-10"
        assert card.level == "A1"
        assert card.position == 10
        assert s.query(AuditEvent).filter(AuditEvent.action == "card.create").count() == 1


def test_validate_card_payload():
    assert validate_card_payload({"english": "Dog", "czech": "Pes", "level": "A2"}) == []
    errors = validate_card_payload({"english": "", "czech": "", "level": "D1", "position": "x"})
    assert len(errors) == 4


@pytest.mark.parametrize("position", ["--5", "\u00b2", "1.5", "+-3"])
def test_validate_card_payload_rejects_non_integer_position(position):
    errors = validate_card_payload({"english": "a", "czech": "b", "level": "A1", "position": position})
    assert errors == ["Position must be a whole number."]


def test_validate_card_payload_accepts_signed_position():
    assert validate_card_payload({"english": "a", "czech": "b", "level": "A1", "position": "-2"}) == []


# ---------- Dashboard views ----------
def test_level_page_lists_cards(client):
    _login(client)
    r = client.get("/dashboard/level/A1")
    assert r.status_code == 200
    assert b"Level A1" in r.data
    assert "Děkuji".encode() in r.data
    assert b"Hello" in r.data


def test_level_page_unknown_level(client):
    _login(client)
    assert client.get("/dashboard/level/Q7").status_code == 404


def test_level_query_redirect(client):
    _login(client)
    r = client.get("/dashboard/level?level=c1")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard/level/C1")


def test_flip_form_marks_card_viewed(app, client):
    _login(client)
    r = client.post("/dashboard/cards/a2-3/viewed", data={"csrf_token": _csrf(client)})
    assert r.status_code == 302
    assert "flipped=a2-3" in r.headers["Location"]
    assert r.headers["Location"].endswith("#card-a2-3")

    r = client.get("/dashboard/level/A2")
    assert b"viewed-badge" in r.data

    r = client.get("/dashboard")
    assert b"1 / 9 viewed (11%)" in r.data


def test_flip_form_requires_csrf(client):
    _login(client)
    r = client.post("/dashboard/cards/a2-3/viewed", data={})
    assert r.status_code == 400


# ---------- Admin ----------
def test_admin_cards_forbidden_for_learner(client):
    _login(client)
    r = client.get("/admin/cards")
    assert r.status_code == 403


def test_admin_card_crud(app, client):
    _login(client, "admin@example.com")
    r = client.get("/admin/cards?level=B2")
    assert r.status_code == 200
    assert b"b2-1" in r.data

    token = _csrf(client)
    r = client.post(
        "/admin/cards/new",
        data={"csrf_token": token, "english": "Bridge", "czech": "Most", "level": "B2", "position": ""},
    )
    assert r.status_code == 302
    with session_scope(app) as s:
        card = s.get(VocabularyCard, "b2-10")
        assert card.english == "Bridge"

    r = client.post(
        "/admin/cards/b2-10/edit",
        data={"csrf_token": token, "english": "Bridge", "czech": "Můstek", "level": "B2", "position": "3"},
    )
    assert r.status_code == 302
    with session_scope(app) as s:
        card = s.get(VocabularyCard, "b2-10")
        assert card.czech == "Můstek"
        assert card.position == 3

    r = client.post("/admin/cards/b2-10/delete", data={"csrf_token": token})
    assert r.status_code == 302
    with session_scope(app) as s:
        assert s.get(VocabularyCard, "b2-10") is None
        actions = {a for (a,) in s.query(AuditEvent.action).all()}
        assert {"card.create", "card.edit", "card.delete"} <= actions


def test_admin_card_invalid_payload(client):
    _login(client, "admin@example.com")
    r = client.post(
        "/admin/cards/new",
        data={"csrf_token": _csrf(client), "english": "", "czech": "Most", "level": "B2"},
        follow_redirects=True,
    )
    assert b"English word is required." in r.data


def test_admin_card_bad_position_is_flashed_not_crashed(app, client):
    _login(client, "admin@example.com")
    token = _csrf(client)
    r = client.post(
        "/admin/cards/new",
        data={"csrf_token": token, "english": "Bridge", "czech": "Most", "level": "B2", "position": "--5"},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Position must be a whole number." in r.data

    r = client.post(
        "/admin/cards/b2-1/edit",
        data={"csrf_token": token, "english": "Bridge", "czech": "Most", "level": "B2", "position": "--5"},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Position must be a whole number." in r.data
    with session_scope(app) as s:
        assert s.get(VocabularyCard, "b2-10") is None
        assert s.get(VocabularyCard, "b2-1").position == 1
