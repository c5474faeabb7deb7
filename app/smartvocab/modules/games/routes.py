from __future__ import annotations

from flask import Blueprint, render_template

from app.smartvocab.constants import CANVAS_HEIGHT, CANVAS_WIDTH, SVG_COLORS, SVG_WORDS
from app.smartvocab.db import db_session
from app.smartvocab.modules.games.service import flying_words, initial_svg_word, random_level
from app.smartvocab.modules.stories.service import list_stories, story_payload
from app.smartvocab.modules.vocabulary.service import get_vocabulary_by_level
from app.smartvocab.rbac import login_required

bp = Blueprint("games", __name__)


@bp.get("/dashboard/more")
@login_required
def more():
    s = db_session()
    level_id = random_level()
    words = [c.english for c in get_vocabulary_by_level(s, level_id)]
    return render_template(
        "dashboard/more.html",
        stories=[story_payload(st) for st in list_stories(s)],
        level_id=level_id,
        flying=[w.to_dict() for w in flying_words(words)],
        canvas={"width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
        svg_state=initial_svg_word(),
        svg_colors=SVG_COLORS,
        svg_words=SVG_WORDS,
    )
