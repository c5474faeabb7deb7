from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for

from app.smartvocab.models import User


def permission_keys(user: User | None) -> set[str]:
    if not user or not user.is_active:
        return set()
    return {perm.key for role in user.roles for perm in role.permissions}


def user_has_permission(user: User | None, permission_key: str) -> bool:
    return permission_key in permission_keys(user)


def _signed_in_user() -> User | None:
    user: User | None = getattr(g, "current_user", None)
    if user is None or not user.is_active:
        return None
    return user


def _redirect_to_login():
    # full_path carries a trailing "?" even without a query string
    return redirect(url_for("auth.login_get", next=request.full_path.rstrip("?")))


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Anonymous visitors are sent to the sign-in page and brought back afterwards."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if _signed_in_user() is None:
            return _redirect_to_login()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Like login_required, plus a 403 (with the missing key on g) for signed-in users lacking the permission."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = _signed_in_user()
            if user is None:
                return _redirect_to_login()
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
