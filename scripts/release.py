"""
Release phase: upgrade the schema to head, then seed roles, the admin account and starter content.

Both steps are safe to repeat on every deploy. Existing admin passwords are left alone.

    python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _database_url() -> str:
    from scripts._db_utils import normalize_db_url

    raw = (os.environ.get("DATABASE_URL") or "").strip()
    if not raw:
        raise RuntimeError("DATABASE_URL must be set for the release phase.")
    db_url = normalize_db_url(raw)
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Production releases need a Postgres DATABASE_URL, not sqlite.")
    return db_url


def _upgrade_schema(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def run_release() -> None:
    db_url = _database_url()

    print("release: alembic upgrade head", flush=True)
    _upgrade_schema(db_url)

    print("release: seeding roles, admin account and starter content", flush=True)
    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("release: done", flush=True)


if __name__ == "__main__":
    run_release()
