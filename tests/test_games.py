import random

from app.smartvocab.constants import CANVAS_HEIGHT, CANVAS_WIDTH, LEVEL_IDS, SVG_COLORS, SVG_WORDS, WORD_BOX_HEIGHT
from app.smartvocab.modules.games.service import (
    FlyingWord,
    flying_words,
    initial_svg_word,
    next_svg_word,
    random_level,
    step_word,
    word_box_width,
)


def test_flying_words_start_inside_canvas():
    rng = random.Random(42)
    words = flying_words(["Hello", "Goodbye", "Environment"], rng=rng)
    assert [w.text for w in words] == ["Hello", "Goodbye", "Environment"]
    for w in words:
        assert w.width == word_box_width(w.text)
        assert w.height == WORD_BOX_HEIGHT
        assert 0 <= w.x <= CANVAS_WIDTH - w.width
        assert 0 <= w.y <= CANVAS_HEIGHT - w.height
        assert -1 <= w.vx < 1
        assert -1 <= w.vy < 1


def test_flying_words_same_seed_same_layout():
    a = flying_words(["Sky", "River"], rng=random.Random(7))
    b = flying_words(["Sky", "River"], rng=random.Random(7))
    assert a == b


def test_step_word_moves_by_velocity():
    w = FlyingWord(text="Sky", x=100, y=100, vx=0.5, vy=-0.5, width=53, height=30)
    moved = step_word(w)
    assert (moved.x, moved.y, moved.vx, moved.vy) == (100.5, 99.5, 0.5, -0.5)


def test_step_word_bounces_off_walls():
    left = step_word(FlyingWord(text="a", x=0.2, y=50, vx=-0.5, vy=0, width=31, height=30))
    assert left.x == 0
    assert left.vx == 0.5

    right = step_word(FlyingWord(text="a", x=CANVAS_WIDTH - 31, y=50, vx=0.8, vy=0, width=31, height=30))
    assert right.x == CANVAS_WIDTH - 31
    assert right.vx == -0.8

    bottom = step_word(FlyingWord(text="a", x=10, y=CANVAS_HEIGHT - 30, vx=0, vy=0.9, width=31, height=30))
    assert bottom.y == CANVAS_HEIGHT - 30
    assert bottom.vy == -0.9

    top = step_word(FlyingWord(text="a", x=10, y=0, vx=0, vy=-0.3, width=31, height=30))
    assert top.y == 0
    assert top.vy == 0.3


def test_step_word_stays_in_bounds_over_many_frames():
    words = flying_words(["Magic", "Ocean", "Light"], rng=random.Random(3))
    for _ in range(5000):
        words = [step_word(w) for w in words]
    for w in words:
        assert 0 <= w.x <= CANVAS_WIDTH - w.width
        assert 0 <= w.y <= CANVAS_HEIGHT - w.height


def test_svg_word_cycle():
    state = initial_svg_word()
    assert state.word == SVG_WORDS[0]
    assert state.color == SVG_COLORS[0]

    rng = random.Random(1)
    seen_colors = []
    for _ in range(len(SVG_COLORS)):
        nxt = next_svg_word(state.word, state.color_index, rng)
        assert nxt.word != state.word
        assert nxt.color_index == (state.color_index + 1) % len(SVG_COLORS)
        seen_colors.append(nxt.color)
        state = nxt
    assert state.color_index == 0
    assert sorted(seen_colors) == sorted(SVG_COLORS)


def test_svg_word_single_word_repeats():
    nxt = next_svg_word("Only", 2, random.Random(0), words=("Only",))
    assert nxt.word == "Only"
    assert nxt.to_dict() == {"word": "Only", "color_index": 3, "color": SVG_COLORS[3]}


def test_random_level():
    assert random_level(random.Random(5)) in LEVEL_IDS
