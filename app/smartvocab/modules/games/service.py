"""
Mini-game state.

The browser owns the animation loop; the server hands out the word set and the
starting state so a reload (or a test) sees the same rules the canvas script uses.
"""
from __future__ import annotations

import random
from dataclasses import asdict, dataclass, replace

from app.smartvocab.constants import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    LEVEL_IDS,
    SVG_COLORS,
    SVG_WORDS,
    WORD_BOX_HEIGHT,
)


@dataclass(frozen=True)
class FlyingWord:
    text: str
    x: float
    y: float
    vx: float
    vy: float
    width: float
    height: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SvgWordState:
    word: str
    color_index: int

    @property
    def color(self) -> str:
        return SVG_COLORS[self.color_index]

    def to_dict(self) -> dict:
        return {"word": self.word, "color_index": self.color_index, "color": self.color}


def random_level(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return rng.choice(LEVEL_IDS)


def word_box_width(text: str) -> float:
    # Approximates the canvas measureText width of "bold 20px sans-serif" plus padding.
    return len(text) * 11 + 20


def flying_words(
    words: list[str],
    width: int = CANVAS_WIDTH,
    height: int = CANVAS_HEIGHT,
    rng: random.Random | None = None,
) -> list[FlyingWord]:
    """Starting boxes: fully inside the canvas, velocity in [-1, 1) on each axis."""
    rng = rng or random.Random()
    out = []
    for text in words:
        w = word_box_width(text)
        h = WORD_BOX_HEIGHT
        out.append(
            FlyingWord(
                text=text,
                x=rng.random() * max(width - w, 0),
                y=rng.random() * max(height - h, 0),
                vx=(rng.random() - 0.5) * 2,
                vy=(rng.random() - 0.5) * 2,
                width=w,
                height=h,
            )
        )
    return out


def step_word(word: FlyingWord, width: int = CANVAS_WIDTH, height: int = CANVAS_HEIGHT) -> FlyingWord:
    """Advance one frame; a box touching a wall is clamped inside and bounces."""
    x, y, vx, vy = word.x + word.vx, word.y + word.vy, word.vx, word.vy
    if x < 0:
        x, vx = 0, -vx
    if x + word.width > width:
        x, vx = width - word.width, -vx
    if y < 0:
        y, vy = 0, -vy
    if y + word.height > height:
        y, vy = height - word.height, -vy
    return replace(word, x=x, y=y, vx=vx, vy=vy)


def next_svg_word(
    current_word: str | None,
    color_index: int,
    rng: random.Random | None = None,
    words: tuple[str, ...] = SVG_WORDS,
) -> SvgWordState:
    """Advance the colour cyclically and pick a different word (when there is more than one)."""
    rng = rng or random.Random()
    next_index = (color_index + 1) % len(SVG_COLORS)
    candidates = [w for w in words if w != current_word] or list(words)
    return SvgWordState(word=rng.choice(candidates), color_index=next_index)


def initial_svg_word(words: tuple[str, ...] = SVG_WORDS) -> SvgWordState:
    return SvgWordState(word=words[0], color_index=0)
