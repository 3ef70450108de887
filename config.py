"""
Match configuration — static tables and runtime settings.

Court geometry and tuning constants are module-level so tests and the host can
read them by name. ``MatchSettings`` holds the toggles the host may change
between ticks; the controller reads it on every update.
"""

import math
from dataclasses import dataclass

# ──────────────────────────────────────────────
# Court geometry (logical units, one tick = 1/60 s)
# ──────────────────────────────────────────────
COURT_WIDTH: float = 800.0
COURT_HEIGHT: float = 500.0
PADDLE_WIDTH: float = 14.0
PADDLE_HEIGHT: float = 90.0
PADDLE_MARGIN: float = 30.0
BALL_RADIUS: float = 8.0
BALL_INITIAL_SPEED: float = 5.0
PLAYER_PADDLE_SPEED: float = 7.0

MAX_PADDLE_HEIGHT: float = COURT_HEIGHT - 20.0
MIN_PADDLE_HEIGHT: float = 22.0

TICK_DT: float = 1.0 / 60.0

# Ball leaves the court this far past either edge before a point is awarded
SCORE_MARGIN: float = 20.0

# ──────────────────────────────────────────────
# Physics tuning
# ──────────────────────────────────────────────
MAX_BOUNCE_ANGLE: float = math.pi / 3   # 60 degrees
SPEED_GROWTH: float = 1.05
SPEED_CAP: float = 14.0
POWER_HIT_THRESHOLD: float = 4.0
POWER_HIT_GROWTH: float = 1.2
POWER_HIT_CAP: float = 16.0
POWER_HIT_DURATION: float = 0.5
COMBO_WINDOW_MS: float = 2000.0

# ──────────────────────────────────────────────
# Match flow
# ──────────────────────────────────────────────
SERVE_COUNTDOWN: float = 3.0
SERVE_VY_SPREAD: float = 3.0
DEFAULT_WIN_SCORE: int = 7

# ──────────────────────────────────────────────
# Power-ups
# ──────────────────────────────────────────────
POWERUP_RADIUS: float = 12.0
POWERUP_TTL: float = 10.0
POWERUP_MAX_STANDING: int = 3
POWERUP_SERVE_SPAWN: float = 4.0
POWERUP_INSET_X: float = 90.0
POWERUP_INSET_Y: float = 55.0
EFFECT_DURATION: float = 6.0
ENLARGE_SCALE: float = 1.6
SHRINK_SCALE: float = 0.6
SLOW_FACTOR: float = 0.6
FAST_FACTOR: float = 1.6

# (type name, cumulative upper bound) for the weighted spawn draw
POWERUP_WEIGHTS = (
    ("enlarge", 0.30),
    ("slow",    0.55),
    ("fast",    0.80),
    ("shrink",  1.00),
)

# Spawn interval ranges in seconds: (low, span)
SPAWN_RATES = {
    "low":    (12.0, 8.0),
    "normal": (8.0, 6.0),
    "high":   (4.0, 4.0),
}

# ──────────────────────────────────────────────
# AI
# ──────────────────────────────────────────────
ADAPTIVE_GAIN: float = 0.45
ADAPTIVE_MIN: float = 0.6
ADAPTIVE_MAX: float = 2.0
AI_MIN_STEP: float = 0.5

DIFFICULTY_SETTINGS = {
    "easy":       {"ai_speed": 3.0, "ai_reaction": 0.03, "ai_error": 60.0, "ball_speed_mul": 0.85},
    "medium":     {"ai_speed": 4.5, "ai_reaction": 0.06, "ai_error": 30.0, "ball_speed_mul": 1.0},
    "hard":       {"ai_speed": 6.0, "ai_reaction": 0.10, "ai_error": 10.0, "ball_speed_mul": 1.15},
    "impossible": {"ai_speed": 8.0, "ai_reaction": 0.18, "ai_error": 2.0,  "ball_speed_mul": 1.3},
}

MODES = ("single", "multi")

# Palettes are consumed by renderers only; physics never reads them.
THEMES = {
    "neon": {
        "ball": "#00f0ff", "player": "#00ff88", "ai": "#ff4488", "net": "#ffffff",
        "bg": "#0a0e1a", "court": "#111827", "text": "#ffffff",
        "accent": "#6366f1", "power_hit": "#ffaa00",
    },
    "classic": {
        "ball": "#ffffff", "player": "#ffffff", "ai": "#ffffff", "net": "#ffffff",
        "bg": "#000000", "court": "#1a1a1a", "text": "#ffffff",
        "accent": "#ffffff", "power_hit": "#ffcc00",
    },
    "retro": {
        "ball": "#ffcc00", "player": "#00ff00", "ai": "#ff00ff", "net": "#ffffff",
        "bg": "#000030", "court": "#202060", "text": "#ffffff",
        "accent": "#ff00ff", "power_hit": "#ffcc00",
    },
}


def difficulty_settings(name: str) -> dict:
    """Return the tuning row for a difficulty tier."""
    try:
        return DIFFICULTY_SETTINGS[name]
    except KeyError:
        raise ValueError(f"unknown difficulty '{name}'") from None


def theme_palette(name: str) -> dict:
    try:
        return THEMES[name]
    except KeyError:
        raise ValueError(f"unknown theme '{name}'") from None


@dataclass
class MatchSettings:
    """Runtime toggles; the host flips these between ticks."""
    theme: str = "neon"
    sound_enabled: bool = True
    reduced_motion: bool = False
    adaptive_ai: bool = False
    powerups_enabled: bool = True
    spawn_rate: str = "normal"
