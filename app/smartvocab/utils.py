from __future__ import annotations

import re
from urllib.parse import urlparse

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def normalize_email(raw: str | None) -> str:
    return (raw or "").strip().lower()


def clean_text(raw: str | None) -> str | None:
    """Strip form input; empty strings become None."""
    value = (raw or "").strip()
    return value or None


def is_http_url(raw: str) -> bool:
    parsed = urlparse(raw)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def safe_next_path(nxt: str | None) -> str | None:
    """Only allow local paths to avoid open redirects."""
    nxt = (nxt or "").strip()
    if nxt.startswith("/") and not nxt.startswith("//") and "\\" not in nxt:
        return nxt
    return None
