#!/usr/bin/env python3
"""
Container entrypoint: run the release phase, then hand the process over to gunicorn.

    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = "8080"


def _validated_port() -> str:
    raw = (os.environ.get("PORT") or "").strip()
    if not raw:
        return DEFAULT_PORT
    if not raw.isdigit() or not 1 <= int(raw) <= 65535:
        print(f"start: PORT={raw!r} is not a port number (1-65535)", flush=True)
        sys.exit(1)
    return raw


def _gunicorn_argv(port: str) -> list[str]:
    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = _validated_port()

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"start: release failed: {e}", flush=True)
        sys.exit(1)

    print(f"start: gunicorn on 0.0.0.0:{port}", flush=True)
    os.execvp("gunicorn", _gunicorn_argv(port))


if __name__ == "__main__":
    main()
