import secrets

from flask import Request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Auth forms and the JSON API rely on the SameSite=Lax session cookie.
CSRF_EXEMPT_BLUEPRINTS = ("auth.", "api.")


def ensure_csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def needs_csrf_check(req: Request) -> bool:
    if req.method not in UNSAFE_METHODS:
        return False
    return not (req.endpoint or "").startswith(CSRF_EXEMPT_BLUEPRINTS)


def validate_csrf(req: Request) -> bool:
    """Token from the X-CSRF-Token header, a form field, or a JSON body field."""
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if not token and req.is_json:
        body = req.get_json(silent=True)
        if isinstance(body, dict):
            token = body.get(CSRF_SESSION_KEY)

    expected = session.get(CSRF_SESSION_KEY)
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))
