import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.smartvocab.models import Permission, Role, User  # noqa: E402
from app.smartvocab.modules.stories.service import seed_stories  # noqa: E402
from app.smartvocab.modules.vocabulary.service import seed_vocabulary  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

PERMISSIONS = (
    ("admin.view", "Admin: view shell and audit trail"),
    ("admin.edit", "Admin: manage accounts"),
    ("cards.view", "Vocabulary cards: view"),
    ("cards.edit", "Vocabulary cards: create, edit, delete"),
    ("stories.view", "Stories: view"),
    ("stories.edit", "Stories: create, upload audio, delete"),
)


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions, the admin role/user and the starter content in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@smartvocab.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///smartvocab.db").strip()

    # Direct engine/session so the release step never imports app.wsgi.
    with script_session(db_url) as s:
        role_admin = s.query(Role).filter(Role.key == "admin").one_or_none()
        if not role_admin:
            role_admin = Role(key="admin", name="Administrator")
            s.add(role_admin)

        for key, name in PERMISSIONS:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                name=admin_name,
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                is_active=True,
            )
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

        s.flush()
        cards_added = seed_vocabulary(s)
        stories_added = seed_stories(s)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")
    print(f"Vocabulary cards added: {cards_added}; stories added: {stories_added}")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
