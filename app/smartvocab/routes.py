from flask import Blueprint, g, redirect, render_template, url_for

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    """Landing page; signed-in users go straight to their dashboard."""
    if getattr(g, "current_user", None):
        return redirect(url_for("vocabulary.dashboard"))
    return render_template("public/index.html")


@bp.get("/health")
def health():
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    # Liveness probe: no DB, no session, no template.
    return "ok", 200
