"""Tests for the JSON API under /api."""
import pytest
from werkzeug.security import generate_password_hash

from app.smartvocab import create_app
from app.smartvocab.constants import CANVAS_HEIGHT, CANVAS_WIDTH, SVG_COLORS, SVG_WORDS
from app.smartvocab.db import session_scope
from app.smartvocab.models import Base, User
from app.smartvocab.modules.stories.service import seed_stories
from app.smartvocab.modules.vocabulary.service import seed_vocabulary


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOGIN_RATE_LIMIT", "5")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        s.add(User(name="Anna", email="anna@example.com", password_hash=generate_password_hash("password123")))
        seed_vocabulary(s)
        seed_stories(s)
    return app.test_client()


def _login(client):
    r = client.post("/api/auth/login", json={"email": "anna@example.com", "password": "password123"})
    assert r.status_code == 200
    return r


# ---------- Auth ----------
def test_register_returns_public_user(client):
    r = client.post("/api/auth/register", json={"name": "Petr", "email": "PETR@example.com", "password": "password123"})
    assert r.status_code == 201
    body = r.json
    assert set(body) == {"id", "name", "email"}
    assert body["email"] == "petr@example.com"
    assert body["name"] == "Petr"


def test_register_missing_fields(client):
    r = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.json == {"error": "All fields are required"}


def test_register_duplicate_email_conflict(client):
    r = client.post("/api/auth/register", json={"name": "A", "email": "anna@example.com", "password": "password123"})
    assert r.status_code == 409
    assert r.json == {"error": "User with this email already exists"}


def test_register_unique_constraint_maps_to_conflict(client, monkeypatch):
    # Two sign-ups racing past validation: the users.email constraint decides.
    monkeypatch.setattr("app.smartvocab.api.validate_registration", lambda *a, **kw: [])
    r = client.post("/api/auth/register", json={"name": "A", "email": "anna@example.com", "password": "password123"})
    assert r.status_code == 409
    assert r.json == {"error": "User with this email already exists"}


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"name": "Eva", "email": "not-an-email", "password": "password123"}, "Invalid email format."),
        ({"name": "Eva", "email": "eva@example.com", "password": "short"}, "Password must be at least 8 characters."),
    ],
)
def test_register_rejects_invalid_input(client, payload, message):
    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 400
    assert r.json == {"error": message}


def test_login_and_me(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json == {"message": "Unauthorized"}

    r = _login(client)
    assert r.json["user"]["email"] == "anna@example.com"
    assert "password_hash" not in r.json["user"]

    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json["name"] == "Anna"


def test_login_wrong_password(client):
    r = client.post("/api/auth/login", json={"email": "anna@example.com", "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json == {"error": "Invalid credentials"}


def test_login_missing_fields(client):
    r = client.post("/api/auth/login", json={"email": "anna@example.com"})
    assert r.status_code == 400


def test_login_rate_limited(client):
    for _ in range(5):
        r = client.post("/api/auth/login", json={"email": "anna@example.com", "password": "wrong-one"})
        assert r.status_code == 401

    r = client.post("/api/auth/login", json={"email": "anna@example.com", "password": "password123"})
    assert r.status_code == 429
    assert r.json == {"error": "Too many login attempts. Please wait 5 minutes."}
    assert client.get("/api/auth/me").status_code == 401


def test_logout_clears_session(client):
    _login(client)
    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json == {"message": "Logged out successfully"}
    assert client.get("/api/auth/me").status_code == 401


# ---------- Vocabulary ----------
def test_levels_public_in_order(client):
    r = client.get("/api/levels")
    assert r.status_code == 200
    assert [lv["id"] for lv in r.json] == ["A1", "A2", "B1", "B2", "C1", "C2"]
    assert r.json[0] == {"id": "A1", "name": "Beginner", "description": "Basic vocabulary and phrases"}


def test_level_cards_require_login(client):
    assert client.get("/api/levels/A1/cards").status_code == 401


def test_level_cards_and_view_marker(client):
    _login(client)
    r = client.get("/api/levels/a1/cards")
    assert r.status_code == 200
    assert len(r.json) == 9
    assert r.json[0]["english"] == "Hello"
    assert r.json[0]["czech"] == "Ahoj"
    assert not any(c["viewed"] for c in r.json)

    r = client.post("/api/cards/a1-1/view")
    assert r.status_code == 200
    assert r.json == {"card_id": "a1-1", "viewed": True}
    # second view is a no-op
    assert client.post("/api/cards/a1-1/view").status_code == 200

    viewed = {c["id"] for c in client.get("/api/levels/A1/cards").json if c["viewed"]}
    assert viewed == {"a1-1"}


def test_unknown_level_and_card(client):
    _login(client)
    r = client.get("/api/levels/Z9/cards")
    assert r.status_code == 404
    assert r.json == {"error": "Unknown level"}
    assert client.post("/api/cards/zz-1/view").status_code == 404


# ---------- Stories ----------
def test_stories_public(client):
    r = client.get("/api/stories")
    assert r.status_code == 200
    assert len(r.json) == 4
    first = r.json[0]
    assert first["title"] == "A Day at the Park"
    assert isinstance(first["id"], str)
    assert first["audioUrl"] is None


# ---------- Games ----------
def test_flying_words_for_level(client):
    _login(client)
    r = client.get("/api/games/flying-words?level=b1")
    assert r.status_code == 200
    assert r.json["level"] == "B1"
    words = r.json["words"]
    assert len(words) == 9
    for w in words:
        assert 0 <= w["x"] <= CANVAS_WIDTH - w["width"]
        assert 0 <= w["y"] <= CANVAS_HEIGHT - w["height"]
        assert -1 <= w["vx"] < 1
        assert -1 <= w["vy"] < 1


def test_flying_words_random_level(client):
    _login(client)
    r = client.get("/api/games/flying-words")
    assert r.status_code == 200
    assert r.json["level"] in ("A1", "A2", "B1", "B2", "C1", "C2")


def test_flying_words_unknown_level(client):
    _login(client)
    assert client.get("/api/games/flying-words?level=Z9").status_code == 404


def test_svg_word_advances_color_and_word(client):
    r = client.get("/api/games/svg-word?word=Apple&color=0")
    assert r.status_code == 200
    assert r.json["color_index"] == 1
    assert r.json["color"] == SVG_COLORS[1]
    assert r.json["word"] in SVG_WORDS
    assert r.json["word"] != "Apple"


def test_svg_word_color_wraps(client):
    r = client.get(f"/api/games/svg-word?word=Sky&color={len(SVG_COLORS) - 1}")
    assert r.json["color_index"] == 0


def test_svg_word_rejects_out_of_range_color(client):
    r = client.get(f"/api/games/svg-word?color={len(SVG_COLORS)}")
    assert r.status_code == 400
    assert "error" in r.json
