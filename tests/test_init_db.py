from sqlalchemy import create_engine

from app.smartvocab.models import Base, Permission, Role, User
from app.smartvocab.modules.stories.models import Story
from app.smartvocab.modules.vocabulary.models import VocabularyCard
from scripts._db_utils import normalize_db_url, script_session
from scripts.init_db import PERMISSIONS, seed_only


def test_seed_only_is_idempotent(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'seed.db'}"
    monkeypatch.setenv("ADMIN_EMAIL", "Boss@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "s3cret-pass")
    engine = create_engine(db_url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()

    seed_only(database_url=db_url)
    seed_only(database_url=db_url)

    with script_session(db_url) as s:
        admin = s.query(User).filter(User.email == "boss@example.com").one()
        assert [r.key for r in admin.roles] == ["admin"]
        role = s.query(Role).filter(Role.key == "admin").one()
        assert sorted(p.key for p in role.permissions) == sorted(k for k, _ in PERMISSIONS)
        assert s.query(Permission).count() == len(PERMISSIONS)
        assert s.query(VocabularyCard).count() == 54
        assert s.query(Story).count() == 4


def test_normalize_db_url():
    assert normalize_db_url(" postgres://u:p@h/db ") == "postgresql://u:p@h/db"
    assert normalize_db_url("sqlite:///x.db") == "sqlite:///x.db"
