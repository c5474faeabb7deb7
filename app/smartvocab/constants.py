"""
Central constants for the Smart Vocab application.
"""
from __future__ import annotations

from typing import NamedTuple


class Level(NamedTuple):
    id: str
    name: str
    description: str


# CEFR proficiency levels, in teaching order.
LEVELS: tuple[Level, ...] = (
    Level("A1", "Beginner", "Basic vocabulary and phrases"),
    Level("A2", "Elementary", "Simple everyday expressions"),
    Level("B1", "Intermediate", "Common topics and situations"),
    Level("B2", "Upper Intermediate", "Complex ideas and technical topics"),
    Level("C1", "Advanced", "Advanced vocabulary and expressions"),
    Level("C2", "Mastery", "Native-like proficiency"),
)

LEVEL_IDS = tuple(level.id for level in LEVELS)

# Progress badge thresholds (percent)
PROGRESS_PRIMARY_MIN = 80
PROGRESS_SKY_MIN = 60

# SVG word cycler
SVG_COLORS = ("#38bdf8", "#22c55e", "#facc15", "#f472b6", "#f87171", "#818cf8", "#f4f4f5")
SVG_WORDS = ("Apple", "Sky", "Dream", "River", "Smile", "Future", "Magic", "Ocean", "Light")

# Flying words canvas
CANVAS_WIDTH = 800
CANVAS_HEIGHT = 400
WORD_BOX_HEIGHT = 30

# Story audio uploads
AUDIO_EXTENSIONS = frozenset({"mp3", "ogg", "wav", "m4a"})
AUDIO_MAX_BYTES = 10 * 1024 * 1024

MIN_PASSWORD_LENGTH = 8
